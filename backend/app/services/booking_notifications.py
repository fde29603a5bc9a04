"""Which notification a booking event produces, and for whom.

Pure functions: they only build drafts. Callers hand them to a
``NotificationEmitter`` after the booking change has been persisted.
"""
import uuid

from app.models.booking import Booking
from app.models.enums import BookingStatus, NotificationType
from app.models.review import Review
from app.services.notifications import NotificationDraft


def _booking_data(booking: Booking) -> dict:
    return {"booking_id": str(booking.id)}


def booking_request_notification(booking: Booking, customer_name: str, service_title: str) -> NotificationDraft:
    return NotificationDraft(
        user_id=booking.provider_id,
        title="New Booking Request",
        message=f"{customer_name} has requested your service: {service_title}",
        type=NotificationType.BOOKING,
        data=_booking_data(booking),
    )


def status_change_notification(
    booking: Booking,
    new_status: BookingStatus | str,
    actor_id: uuid.UUID,
    provider_name: str,
    service_title: str,
) -> NotificationDraft | None:
    """Draft for the single recipient of a status change, or None when nobody is told.

    A cancellation goes to the provider when the customer cancelled and to the
    customer otherwise (provider or admin).
    """
    new_status = BookingStatus(new_status)
    recipient = booking.customer_id

    if new_status == BookingStatus.CONFIRMED:
        title = "Booking Confirmed"
        message = f"Your booking for {service_title} has been confirmed by {provider_name}"
    elif new_status == BookingStatus.IN_PROGRESS:
        title = "Service Started"
        message = f"{provider_name} has started working on your service: {service_title}"
    elif new_status == BookingStatus.COMPLETED:
        title = "Service Completed"
        message = f"Your service {service_title} has been completed. Please leave a review!"
    elif new_status == BookingStatus.CANCELLED:
        title = "Booking Cancelled"
        message = f"The booking for {service_title} has been cancelled"
        if actor_id == booking.customer_id:
            recipient = booking.provider_id
    else:
        return None

    return NotificationDraft(
        user_id=recipient,
        title=title,
        message=message,
        type=NotificationType.BOOKING,
        data={**_booking_data(booking), "status": new_status.value},
    )


def review_notification(review: Review, customer_name: str) -> NotificationDraft:
    return NotificationDraft(
        user_id=review.provider_id,
        title="New Review",
        message=f"{customer_name} left a {review.rating}-star review for your service",
        type=NotificationType.REVIEW,
        data={"booking_id": str(review.booking_id), "review_id": str(review.id)},
    )
