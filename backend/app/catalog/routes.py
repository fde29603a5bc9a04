"""Service catalog: what providers offer and at what price."""
import uuid

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.dependencies import get_current_user, get_optional_user
from app.exceptions import ForbiddenError, NotFoundError
from app.models.enums import ServiceCategory, UserRole
from app.models.service import Service
from app.models.user import User
from app.schemas.service import (
    ServiceCreateRequest,
    ServiceListResponse,
    ServiceResponse,
    ServiceUpdateRequest,
)
from app.utils.rate_limit import LIST_RATE_LIMIT, limiter

logger = structlog.get_logger()
router = APIRouter()


async def _get_service(db: AsyncSession, service_id: uuid.UUID, refresh: bool = False) -> Service:
    stmt = select(Service).where(Service.id == service_id).options(selectinload(Service.provider))
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    result = await db.execute(stmt)
    service = result.scalar_one_or_none()
    if not service:
        raise NotFoundError("Service")
    return service


def _ensure_owner_or_admin(service: Service, user: User) -> None:
    if user.role != UserRole.ADMIN and service.provider_id != user.id:
        raise ForbiddenError("You can only manage your own services")


@router.get("", response_model=ServiceListResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def list_services(
    request: Request,
    category: ServiceCategory | None = None,
    provider_id: uuid.UUID | None = None,
    location: str | None = Query(None, max_length=100),
    search: str | None = Query(None, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0, le=10000),
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """List active services with optional category, provider, location and text filters.

    A provider listing their own services (or an admin) also sees deactivated ones.
    """
    filters = []
    if category is not None:
        filters.append(Service.category == category)
    if provider_id is not None:
        filters.append(Service.provider_id == provider_id)
    can_see_inactive = provider_id is not None and user is not None and (
        user.id == provider_id or user.role == UserRole.ADMIN
    )
    if not can_see_inactive:
        filters.append(Service.is_active == True)  # noqa: E712
    if location:
        filters.append(Service.location.ilike(f"%{location.strip()}%"))
    if search:
        pattern = f"%{search}%"
        filters.append(or_(
            Service.title.ilike(pattern),
            Service.description.ilike(pattern),
            Service.category.ilike(pattern),
            Service.location.ilike(pattern),
        ))

    total = (await db.execute(select(func.count(Service.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(Service)
        .where(*filters)
        .options(selectinload(Service.provider))
        .order_by(Service.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return ServiceListResponse(
        services=[ServiceResponse.model_validate(s) for s in result.scalars().all()],
        total=total,
    )


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(
    service_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    service = await _get_service(db, service_id)
    return ServiceResponse.model_validate(service)


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_service(
    request: Request,
    body: ServiceCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a service offering (providers and admins)."""
    if user.role not in (UserRole.PROVIDER, UserRole.ADMIN):
        raise ForbiddenError("Only providers can create services")

    service = Service(
        provider_id=user.id,
        title=body.title,
        description=body.description,
        category=body.category,
        price=body.price,
        price_type=body.price_type,
        location=body.location,
        images=body.images,
        is_active=True,
    )
    db.add(service)
    await db.flush()

    logger.info("service_created", service_id=str(service.id), provider_id=str(user.id))
    return ServiceResponse.model_validate(await _get_service(db, service.id, refresh=True))


@router.put("/{service_id}", response_model=ServiceResponse)
@limiter.limit("30/minute")
async def update_service(
    request: Request,
    service_id: uuid.UUID,
    body: ServiceUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Edit a service. Existing bookings keep the price they were booked at."""
    service = await _get_service(db, service_id)
    _ensure_owner_or_admin(service, user)

    UPDATABLE_FIELDS = {"title", "description", "category", "price", "price_type", "location", "images", "is_active"}
    update_data = body.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if field not in UPDATABLE_FIELDS:
            continue
        # Only location may be cleared
        if value is None and field != "location":
            continue
        setattr(service, field, value)

    await db.flush()
    logger.info("service_updated", service_id=str(service.id), fields=sorted(update_data))
    return ServiceResponse.model_validate(await _get_service(db, service.id, refresh=True))


@router.delete("/{service_id}", status_code=status.HTTP_200_OK)
@limiter.limit("20/minute")
async def delete_service(
    request: Request,
    service_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate a service. Bookings keep referencing it."""
    service = await _get_service(db, service_id)
    _ensure_owner_or_admin(service, user)

    service.is_active = False
    await db.flush()

    logger.info("service_deactivated", service_id=str(service.id), by=str(user.id))
    return {"status": "deactivated", "service_id": str(service.id)}
