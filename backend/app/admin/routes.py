import uuid
from datetime import date

import structlog
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import case, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.dependencies import get_current_admin
from app.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.models.audit_log import AuditLog
from app.models.booking import Booking
from app.models.enums import BookingStatus, UserRole
from app.models.provider_profile import ProviderProfile
from app.models.review import Review
from app.models.service import Service
from app.models.user import User
from app.schemas.admin import AdminUserListResponse, AdminUserUpdateRequest
from app.schemas.auth import UserResponse
from app.schemas.booking import BookingDetailResponse, BookingListResponse
from app.utils.rate_limit import limiter

logger = structlog.get_logger()
router = APIRouter(prefix="/admin", tags=["admin"])


def _value(enum_or_str) -> str:
    return enum_or_str.value if hasattr(enum_or_str, "value") else enum_or_str


async def _get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User")
    return user


# --- 1. Platform stats ---


@router.get("/stats")
@limiter.limit("30/minute")
async def platform_stats(
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Return high-level platform statistics."""
    role_counts_result = await db.execute(
        select(User.role, func.count(User.id)).group_by(User.role)
    )
    role_counts = {_value(row[0]): row[1] for row in role_counts_result}

    status_counts_result = await db.execute(
        select(Booking.status, func.count(Booking.id)).group_by(Booking.status)
    )
    status_counts = {_value(row[0]): row[1] for row in status_counts_result}

    service_result = await db.execute(
        select(
            func.count(Service.id),
            func.coalesce(func.sum(case((Service.is_active.is_(True), 1), else_=0)), 0),
        )
    )
    total_services, active_services = service_result.one()

    total_reviews = (await db.execute(select(func.count(Review.id)))).scalar() or 0

    revenue_result = await db.execute(
        select(func.coalesce(func.sum(Booking.total_price), 0)).where(
            Booking.status == BookingStatus.COMPLETED
        )
    )
    total_revenue = revenue_result.scalar() or 0

    return {
        "users": {
            "customers": role_counts.get(UserRole.CUSTOMER.value, 0),
            "providers": role_counts.get(UserRole.PROVIDER.value, 0),
            "admins": role_counts.get(UserRole.ADMIN.value, 0),
            "total": sum(role_counts.values()),
        },
        "services": {
            "total": total_services,
            "active": active_services,
        },
        "bookings": {
            "total": sum(status_counts.values()),
            "by_status": {s.value: status_counts.get(s.value, 0) for s in BookingStatus},
        },
        "reviews": total_reviews,
        "revenue": float(total_revenue),
    }


# --- 2. Users ---


@router.get("/users", response_model=AdminUserListResponse)
@limiter.limit("30/minute")
async def list_users(
    request: Request,
    role: UserRole | None = None,
    search: str | None = Query(None, max_length=100),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=10000),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """List users with optional role filter and name/email search."""
    filters = []
    if role is not None:
        filters.append(User.role == role)
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(User.name.ilike(pattern) | User.email.ilike(pattern))

    total = (await db.execute(select(func.count(User.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(User).where(*filters).order_by(User.created_at.desc()).offset(offset).limit(limit)
    )
    return AdminUserListResponse(
        users=[UserResponse.model_validate(u) for u in result.scalars().all()],
        total=total,
    )


@router.put("/users/{user_id}", response_model=UserResponse)
@limiter.limit("30/minute")
async def update_user(
    request: Request,
    user_id: uuid.UUID,
    body: AdminUserUpdateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Change a user's role, suspension or verification flag."""
    if user_id == admin.id:
        raise ValidationError("You cannot modify your own account from the admin panel")

    user = await _get_user(db, user_id)
    changes: dict[str, dict] = {}

    if body.role is not None and body.role != user.role:
        changes["role"] = {"from": _value(user.role), "to": body.role.value}
        user.role = body.role
        if body.role == UserRole.PROVIDER:
            profile_result = await db.execute(
                select(ProviderProfile.id).where(ProviderProfile.user_id == user.id)
            )
            if profile_result.scalar_one_or_none() is None:
                db.add(ProviderProfile(user_id=user.id))
    if body.is_active is not None and body.is_active != user.is_active:
        changes["is_active"] = {"from": user.is_active, "to": body.is_active}
        user.is_active = body.is_active
    if body.is_verified is not None and body.is_verified != user.is_verified:
        changes["is_verified"] = {"from": user.is_verified, "to": body.is_verified}
        user.is_verified = body.is_verified

    if changes:
        db.add(AuditLog(
            action="user_updated",
            admin_user_id=admin.id,
            target_user_id=user.id,
            detail=body.reason,
            metadata_json=changes,
        ))
    await db.flush()
    await db.refresh(user)

    logger.info(
        "admin_user_updated",
        user_id=str(user_id),
        admin_id=str(admin.id),
        changed=sorted(changes),
    )
    return UserResponse.model_validate(user)


@router.delete("/users/{user_id}")
@limiter.limit("10/minute")
async def delete_user(
    request: Request,
    user_id: uuid.UUID,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Hard-delete an account. Its services, bookings and reviews cascade."""
    if user_id == admin.id:
        raise ValidationError("You cannot delete your own account")

    user = await _get_user(db, user_id)
    if user.role == UserRole.ADMIN:
        raise ForbiddenError("Cannot delete admin users")

    db.add(AuditLog(
        action="user_deleted",
        admin_user_id=admin.id,
        target_user_id=None,
        detail=f"Deleted {_value(user.role)} account {user.email}",
        metadata_json={"user_id": str(user.id), "role": _value(user.role)},
    ))
    await db.execute(delete(User).where(User.id == user_id))
    await db.flush()

    logger.info("admin_user_deleted", user_id=str(user_id), admin_id=str(admin.id))
    return {"status": "deleted", "user_id": str(user_id)}


# --- 3. Bookings ---


@router.get("/bookings", response_model=BookingListResponse)
@limiter.limit("30/minute")
async def list_bookings(
    request: Request,
    booking_status: BookingStatus | None = Query(None, alias="status"),
    provider_id: uuid.UUID | None = None,
    customer_id: uuid.UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=10000),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """List every booking with optional filters on status, parties and scheduled date."""
    filters = []
    if booking_status is not None:
        filters.append(Booking.status == booking_status)
    if provider_id is not None:
        filters.append(Booking.provider_id == provider_id)
    if customer_id is not None:
        filters.append(Booking.customer_id == customer_id)
    if date_from is not None:
        filters.append(Booking.scheduled_date >= date_from)
    if date_to is not None:
        filters.append(Booking.scheduled_date <= date_to)
    if date_from and date_to and date_from > date_to:
        raise ValidationError("date_from must be before date_to")

    total = (await db.execute(select(func.count(Booking.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(Booking)
        .where(*filters)
        .options(
            selectinload(Booking.customer),
            selectinload(Booking.provider),
            selectinload(Booking.service),
            selectinload(Booking.review),
        )
        .order_by(Booking.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return BookingListResponse(
        bookings=[BookingDetailResponse.model_validate(b) for b in result.scalars().all()],
        total=total,
    )
