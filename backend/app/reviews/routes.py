import uuid

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.dependencies import get_current_user, get_notification_emitter
from app.exceptions import ForbiddenError, NotFoundError
from app.models.enums import UserRole
from app.models.review import Review
from app.models.user import User
from app.schemas.review import ReviewCreateRequest, ReviewResponse, ReviewWithCustomerResponse
from app.services.notifications import NotificationEmitter
from app.services.reviews import create_review as create_review_service
from app.services.reviews import refresh_provider_rating
from app.utils.rate_limit import LIST_RATE_LIMIT, limiter

logger = structlog.get_logger()
router = APIRouter()


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def create_review(
    request: Request,
    body: ReviewCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
):
    """Review a completed booking (the booking's customer only, once)."""
    review = await create_review_service(db, user, body.booking_id, body.rating, body.comment, emitter)
    return ReviewResponse.model_validate(review)


@router.get("", response_model=list[ReviewWithCustomerResponse])
@limiter.limit(LIST_RATE_LIMIT)
async def list_reviews(
    request: Request,
    provider_id: uuid.UUID | None = None,
    service_id: uuid.UUID | None = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0, le=10000),
    db: AsyncSession = Depends(get_db),
):
    """List reviews, optionally for one provider or one service."""
    stmt = select(Review).options(selectinload(Review.customer))
    if provider_id is not None:
        stmt = stmt.where(Review.provider_id == provider_id)
    if service_id is not None:
        stmt = stmt.where(Review.service_id == service_id)

    result = await db.execute(
        stmt.order_by(Review.created_at.desc()).offset(offset).limit(limit)
    )
    return [ReviewWithCustomerResponse.model_validate(r) for r in result.scalars().all()]


@router.delete("/{review_id}", status_code=status.HTTP_200_OK)
@limiter.limit("10/minute")
async def delete_review(
    request: Request,
    review_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a review (its author or an admin)."""
    result = await db.execute(select(Review).where(Review.id == review_id))
    review = result.scalar_one_or_none()
    if not review:
        raise NotFoundError("Review")

    if user.role != UserRole.ADMIN and review.customer_id != user.id:
        raise ForbiddenError("You can only delete your own reviews")

    provider_id = review.provider_id
    await db.execute(delete(Review).where(Review.id == review_id))
    await refresh_provider_rating(db, provider_id)
    await db.flush()

    logger.info("review_deleted", review_id=str(review_id), by=str(user.id))
    return {"status": "deleted", "review_id": str(review_id)}
