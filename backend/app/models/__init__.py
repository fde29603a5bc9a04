from app.models.audit_log import AuditLog
from app.models.booking import Booking
from app.models.notification import Notification
from app.models.provider_profile import ProviderProfile
from app.models.report import Report
from app.models.review import Review
from app.models.service import Service
from app.models.user import User

__all__ = [
    "AuditLog",
    "User",
    "ProviderProfile",
    "Service",
    "Booking",
    "Review",
    "Notification",
    "Report",
]
