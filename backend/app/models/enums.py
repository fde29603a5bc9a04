import enum

# Enums are stored as VARCHAR columns; values are the wire format.


class UserRole(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    PROVIDER = "PROVIDER"
    ADMIN = "ADMIN"


class BookingStatus(str, enum.Enum):
    REQUESTED = "REQUESTED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ServiceCategory(str, enum.Enum):
    PLUMBER = "PLUMBER"
    ELECTRICIAN = "ELECTRICIAN"
    CLEANER = "CLEANER"
    TUTOR = "TUTOR"
    TECHNICIAN = "TECHNICIAN"
    CARPENTER = "CARPENTER"
    PAINTER = "PAINTER"
    GARDENER = "GARDENER"
    MECHANIC = "MECHANIC"
    OTHER = "OTHER"


class PriceType(str, enum.Enum):
    FIXED = "FIXED"
    HOURLY = "HOURLY"
    SQFT = "SQFT"


class NotificationType(str, enum.Enum):
    BOOKING = "booking"
    REVIEW = "review"
    REPORT = "report"


class ReportType(str, enum.Enum):
    USER = "USER"
    SERVICE = "SERVICE"
    REVIEW = "REVIEW"
    BOOKING = "BOOKING"


class ReportStatus(str, enum.Enum):
    PENDING = "PENDING"
    INVESTIGATING = "INVESTIGATING"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"
