import uuid

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.dependencies import (
    get_current_actor,
    get_current_admin,
    get_current_customer,
    get_current_user,
    get_notification_emitter,
)
from app.exceptions import ForbiddenError
from app.models.audit_log import AuditLog
from app.models.booking import Booking
from app.models.enums import BookingStatus, UserRole
from app.models.review import Review
from app.models.user import User
from app.schemas.booking import (
    BookingCreateRequest,
    BookingDetailResponse,
    BookingListResponse,
    BookingUpdateRequest,
)
from app.services.booking_creation import create_booking as create_booking_service
from app.services.booking_lifecycle import update_booking as update_booking_service
from app.services.bookings import load_booking
from app.services.notifications import NotificationEmitter
from app.services.reviews import refresh_provider_rating
from app.utils.booking_state import Actor
from app.utils.rate_limit import BOOKING_RATE_LIMIT, LIST_RATE_LIMIT, limiter

logger = structlog.get_logger()
router = APIRouter()


def _can_view(booking: Booking, user: User) -> bool:
    return user.role == UserRole.ADMIN or user.id in (booking.customer_id, booking.provider_id)


@router.get("", response_model=BookingListResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def list_my_bookings(
    request: Request,
    booking_status: BookingStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=10000),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List bookings for the current user (customer, provider, or admin)."""
    stmt = select(Booking)
    count_stmt = select(func.count(Booking.id))
    if user.role == UserRole.CUSTOMER:
        stmt = stmt.where(Booking.customer_id == user.id)
        count_stmt = count_stmt.where(Booking.customer_id == user.id)
    elif user.role == UserRole.PROVIDER:
        stmt = stmt.where(Booking.provider_id == user.id)
        count_stmt = count_stmt.where(Booking.provider_id == user.id)
    # Admin sees all bookings

    if booking_status is not None:
        stmt = stmt.where(Booking.status == booking_status)
        count_stmt = count_stmt.where(Booking.status == booking_status)

    total = (await db.execute(count_stmt)).scalar() or 0
    result = await db.execute(
        stmt.options(
            selectinload(Booking.customer),
            selectinload(Booking.provider),
            selectinload(Booking.service),
            selectinload(Booking.review),
        )
        .order_by(Booking.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return BookingListResponse(
        bookings=[BookingDetailResponse.model_validate(b) for b in result.scalars().all()],
        total=total,
    )


@router.post("", response_model=BookingDetailResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(BOOKING_RATE_LIMIT)
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    customer: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
):
    """Book a service (customer only). The booking starts in REQUESTED."""
    booking = await create_booking_service(db, customer, body, emitter)
    return BookingDetailResponse.model_validate(booking)


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking(
    booking_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a single booking. Only its customer, its provider or an admin may see it."""
    booking = await load_booking(db, booking_id)
    if not _can_view(booking, user):
        raise ForbiddenError("Not your booking")
    return BookingDetailResponse.model_validate(booking)


@router.put("/{booking_id}", response_model=BookingDetailResponse)
@limiter.limit("30/minute")
async def update_booking(
    request: Request,
    booking_id: uuid.UUID,
    body: BookingUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
):
    """Change a booking's status, reschedule it or edit its notes."""
    booking = await update_booking_service(db, booking_id, actor, body, emitter)
    return BookingDetailResponse.model_validate(booking)


@router.delete("/{booking_id}", status_code=status.HTTP_200_OK)
@limiter.limit("10/minute")
async def delete_booking(
    request: Request,
    booking_id: uuid.UUID,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Hard-delete a booking and its review (admin only)."""
    booking = await load_booking(db, booking_id)
    had_review = booking.review is not None
    provider_id = booking.provider_id

    db.add(AuditLog(
        action="booking_deleted",
        admin_user_id=admin.id,
        target_user_id=booking.customer_id,
        detail=f"Booking {booking.id} deleted in status {BookingStatus(booking.status).value}",
        metadata_json={
            "booking_id": str(booking.id),
            "provider_id": str(provider_id),
            "service_id": str(booking.service_id),
        },
    ))
    await db.execute(delete(Review).where(Review.booking_id == booking.id))
    await db.execute(delete(Booking).where(Booking.id == booking.id))
    if had_review:
        await refresh_provider_rating(db, provider_id)
    await db.flush()

    logger.info("booking_deleted", booking_id=str(booking_id), admin_id=str(admin.id))
    return {"status": "deleted", "booking_id": str(booking_id)}
