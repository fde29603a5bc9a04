"""Booking lifecycle: every status change and edit of an existing booking.

``update_booking`` is the only write path for bookings after creation:
fetch (row locked) -> policy -> apply -> one flush -> notify.
"""
import uuid

import structlog
from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    AppException,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    ValidationError,
)
from app.metrics import BOOKING_TRANSITIONS
from app.models.audit_log import AuditLog
from app.models.booking import Booking
from app.models.enums import BookingStatus
from app.models.provider_profile import ProviderProfile
from app.models.review import Review
from app.schemas.booking import BookingUpdateRequest
from app.services.booking_notifications import status_change_notification
from app.services.bookings import SLOT_TAKEN_MESSAGE, find_slot_conflict, load_booking
from app.services.notifications import NotificationEmitter, emit_best_effort
from app.services.reviews import refresh_provider_rating
from app.utils.booking_state import (
    Actor,
    TransitionDecision,
    TransitionRejection,
    evaluate_transition,
    is_terminal,
)

logger = structlog.get_logger()

_REJECTION_ERRORS: dict[TransitionRejection, type[AppException]] = {
    TransitionRejection.ACCESS_DENIED: ForbiddenError,
    TransitionRejection.ROLE_NOT_AUTHORIZED: ValidationError,
    TransitionRejection.INVALID_STATUS_FOR_ROLE: ValidationError,
    TransitionRejection.INVALID_TRANSITION: InvalidTransitionError,
}


def rejection_error(decision: TransitionDecision) -> AppException:
    """Map a denied policy decision onto the error the caller sees."""
    error_cls = _REJECTION_ERRORS[decision.rejection]
    return error_cls(detail=decision.message)


async def update_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    actor: Actor,
    changes: BookingUpdateRequest,
    emitter: NotificationEmitter,
) -> Booking:
    """Apply a status change, a reschedule and/or a notes edit to one booking.

    Either the whole change set is applied or nothing is. At most one
    notification is emitted, after the booking has been written, and its
    failure never undoes the booking change.
    """
    booking = await load_booking(db, booking_id, for_update=True)
    provided = changes.model_fields_set
    current_status = BookingStatus(booking.status)
    requested_status = changes.status if "status" in provided else None

    decision = evaluate_transition(
        current_status,
        requested_status,
        actor,
        customer_id=booking.customer_id,
        provider_id=booking.provider_id,
    )
    if not decision.allowed:
        logger.info(
            "booking_update_rejected",
            booking_id=str(booking.id),
            actor_id=str(actor.id),
            reason=decision.rejection.value,
        )
        raise rejection_error(decision)

    new_status = requested_status or current_status
    status_changed = new_status != current_status
    # A review only exists on a COMPLETED booking
    drop_review = status_changed and current_status == BookingStatus.COMPLETED and booking.review is not None

    new_date = new_time = None
    if "scheduled_at" in provided and changes.scheduled_at is not None:
        if is_terminal(new_status):
            raise ValidationError(f"A {new_status.value} booking cannot be rescheduled")
        new_date = changes.scheduled_at.date()
        new_time = changes.scheduled_at.strftime("%H:%M")
        conflict = await find_slot_conflict(
            db, booking.provider_id, new_date, new_time, exclude_booking_id=booking.id
        )
        if conflict:
            logger.info("booking_slot_conflict", booking_id=str(booking.id), conflict_id=str(conflict.id))
            raise ConflictError(SLOT_TAKEN_MESSAGE)

    try:
        async with db.begin_nested():
            if status_changed:
                booking.status = new_status
            if new_date is not None:
                booking.scheduled_date = new_date
                booking.scheduled_time = new_time
            if "notes" in provided:
                booking.notes = changes.notes or None
            if status_changed and BookingStatus.COMPLETED in (current_status, new_status):
                step = 1 if new_status == BookingStatus.COMPLETED else -1
                await db.execute(
                    update(ProviderProfile)
                    .where(ProviderProfile.user_id == booking.provider_id)
                    .values(completed_jobs=ProviderProfile.completed_jobs + step)
                )
            if drop_review:
                await db.execute(delete(Review).where(Review.booking_id == booking.id))
            if actor.is_admin and status_changed:
                db.add(AuditLog(
                    action="booking_status_override",
                    admin_user_id=actor.id,
                    target_user_id=booking.customer_id,
                    detail=f"{current_status.value} -> {new_status.value}",
                    metadata_json={
                        "booking_id": str(booking.id),
                        "from_status": current_status.value,
                        "to_status": new_status.value,
                        "bypassed_state_machine": decision.bypassed_state_machine,
                        "review_removed": drop_review,
                    },
                ))
            await db.flush()
            if drop_review:
                await refresh_provider_rating(db, booking.provider_id)
    except IntegrityError:
        # Another active booking already holds the slot this change would occupy
        logger.warning("booking_slot_conflict", booking_id=str(booking.id), race=True)
        raise ConflictError(SLOT_TAKEN_MESSAGE)

    booking = await load_booking(db, booking.id, refresh=True)

    if status_changed:
        BOOKING_TRANSITIONS.labels(new_status.value, actor.role.value).inc()
        logger.info(
            "booking_status_changed",
            booking_id=str(booking.id),
            from_status=current_status.value,
            to_status=new_status.value,
            actor_id=str(actor.id),
            actor_role=actor.role.value,
        )
        if actor.is_admin:
            logger.warning(
                "booking_status_override",
                booking_id=str(booking.id),
                admin_id=str(actor.id),
                bypassed_state_machine=decision.bypassed_state_machine,
                review_removed=drop_review,
            )
        draft = status_change_notification(
            booking,
            new_status,
            actor_id=actor.id,
            provider_name=booking.provider.name,
            service_title=booking.service.title,
        )
        await emit_best_effort(emitter, draft)

    return booking
