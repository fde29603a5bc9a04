"""Custom Prometheus metrics for marketplace business observability."""

from prometheus_client import Counter

# Booking lifecycle counters
BOOKINGS_CREATED = Counter(
    "karigar_bookings_created_total",
    "Total bookings created",
    ["category"],
)
BOOKING_TRANSITIONS = Counter(
    "karigar_booking_transitions_total",
    "Booking status changes",
    ["to_status", "actor_role"],
)
BOOKING_CONFLICTS = Counter(
    "karigar_booking_slot_conflicts_total",
    "Booking attempts rejected because the provider slot was taken",
)

REVIEWS_CREATED = Counter(
    "karigar_reviews_created_total",
    "Total reviews created",
    ["rating"],
)

NOTIFICATION_FAILURES = Counter(
    "karigar_notification_failures_total",
    "Notifications that could not be recorded",
)

# Registration counters
USERS_REGISTERED = Counter(
    "karigar_users_registered_total",
    "Total users registered",
    ["role"],
)
