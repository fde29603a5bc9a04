"""Booking creation with provider double-booking protection."""
import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.metrics import BOOKING_CONFLICTS, BOOKINGS_CREATED
from app.models.booking import Booking
from app.models.enums import BookingStatus, ServiceCategory, UserRole
from app.models.service import Service
from app.models.user import User
from app.schemas.booking import BookingCreateRequest
from app.services.booking_notifications import booking_request_notification
from app.services.bookings import SLOT_TAKEN_MESSAGE, find_slot_conflict, load_booking
from app.services.notifications import NotificationEmitter, emit_best_effort

logger = structlog.get_logger()


async def create_booking(
    db: AsyncSession,
    customer: User,
    payload: BookingCreateRequest,
    emitter: NotificationEmitter,
) -> Booking:
    """Book a service for ``customer`` in the REQUESTED state.

    The price is snapshotted from the service at this instant. The slot check
    is backed by a partial unique index, so two concurrent requests for the
    same provider slot cannot both succeed.
    """
    if UserRole(customer.role) != UserRole.CUSTOMER:
        raise ForbiddenError("Only customers can book services")

    result = await db.execute(select(Service).where(Service.id == payload.service_id))
    service = result.scalar_one_or_none()
    # Inactive and missing services are indistinguishable to the caller
    if not service or not service.is_active:
        raise NotFoundError(detail="Service not found or inactive")

    if service.provider_id == customer.id:
        raise ValidationError("You cannot book your own service")

    conflict = await find_slot_conflict(
        db, service.provider_id, payload.scheduled_date, payload.scheduled_time
    )
    if conflict:
        BOOKING_CONFLICTS.inc()
        logger.info(
            "booking_slot_conflict",
            provider_id=str(service.provider_id),
            scheduled_date=payload.scheduled_date.isoformat(),
            scheduled_time=payload.scheduled_time,
        )
        raise ConflictError(SLOT_TAKEN_MESSAGE)

    booking = Booking(
        customer_id=customer.id,
        provider_id=service.provider_id,
        service_id=service.id,
        status=BookingStatus.REQUESTED,
        scheduled_date=payload.scheduled_date,
        scheduled_time=payload.scheduled_time,
        address=payload.address,
        notes=payload.notes,
        total_price=service.price,
    )
    try:
        async with db.begin_nested():
            db.add(booking)
            await db.flush()
    except IntegrityError:
        # Lost the race against a concurrent booking of the same slot
        BOOKING_CONFLICTS.inc()
        logger.warning(
            "booking_slot_conflict",
            provider_id=str(service.provider_id),
            scheduled_date=payload.scheduled_date.isoformat(),
            scheduled_time=payload.scheduled_time,
            race=True,
        )
        raise ConflictError(SLOT_TAKEN_MESSAGE)

    booking = await load_booking(db, booking.id, refresh=True)
    BOOKINGS_CREATED.labels(ServiceCategory(service.category).value).inc()
    logger.info(
        "booking_created",
        booking_id=str(booking.id),
        customer_id=str(customer.id),
        provider_id=str(service.provider_id),
        total_price=str(booking.total_price),
    )

    await emit_best_effort(
        emitter,
        booking_request_notification(booking, customer_name=customer.name, service_title=service.title),
    )
    return booking
