"""Review attachment: one review per completed booking, by its customer."""
import uuid

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ConflictError, ForbiddenError, ValidationError
from app.metrics import REVIEWS_CREATED
from app.models.enums import BookingStatus, UserRole
from app.models.provider_profile import ProviderProfile
from app.models.review import Review
from app.models.user import User
from app.services.booking_notifications import review_notification
from app.services.bookings import load_booking
from app.services.notifications import NotificationEmitter, emit_best_effort

logger = structlog.get_logger()

MIN_RATING = 1
MAX_RATING = 5


def is_valid_rating(value) -> bool:
    # bool is an int subclass; 3.5 and "5" are not ratings
    return isinstance(value, int) and not isinstance(value, bool) and MIN_RATING <= value <= MAX_RATING


async def refresh_provider_rating(db: AsyncSession, provider_id: uuid.UUID) -> None:
    """Recompute the provider's average rating and review count in one UPDATE."""
    avg_subq = (
        select(func.coalesce(func.round(func.avg(Review.rating), 2), 0))
        .where(Review.provider_id == provider_id)
        .scalar_subquery()
    )
    count_subq = (
        select(func.count(Review.id))
        .where(Review.provider_id == provider_id)
        .scalar_subquery()
    )
    await db.execute(
        update(ProviderProfile)
        .where(ProviderProfile.user_id == provider_id)
        .values(average_rating=avg_subq, total_reviews=count_subq)
    )


async def create_review(
    db: AsyncSession,
    customer: User,
    booking_id: uuid.UUID,
    rating,
    comment: str | None,
    emitter: NotificationEmitter,
) -> Review:
    if UserRole(customer.role) != UserRole.CUSTOMER:
        raise ForbiddenError("Only customers can leave reviews")

    if not is_valid_rating(rating):
        raise ValidationError(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}")

    booking = await load_booking(db, booking_id)

    if booking.customer_id != customer.id:
        raise ForbiddenError("You can only review your own bookings")

    if booking.status != BookingStatus.COMPLETED:
        raise ValidationError("You can only review completed services")

    if booking.review is not None:
        raise ConflictError("You have already reviewed this booking")

    review = Review(
        booking_id=booking.id,
        customer_id=customer.id,
        provider_id=booking.provider_id,
        service_id=booking.service_id,
        rating=rating,
        comment=comment,
    )
    try:
        async with db.begin_nested():
            db.add(review)
            await db.flush()
    except IntegrityError:
        raise ConflictError("You have already reviewed this booking")

    await refresh_provider_rating(db, booking.provider_id)
    # Keep the loaded booking consistent for callers that serialize it
    booking.review = review

    REVIEWS_CREATED.labels(str(rating)).inc()
    logger.info("review_created", review_id=str(review.id), booking_id=str(booking.id), rating=rating)

    await emit_best_effort(emitter, review_notification(review, customer_name=customer.name))
    return review
