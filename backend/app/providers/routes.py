import uuid

import structlog
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import get_db
from app.dependencies import get_current_provider
from app.exceptions import NotFoundError
from app.models.enums import ServiceCategory, UserRole
from app.models.provider_profile import ProviderProfile
from app.models.review import Review
from app.models.service import Service
from app.models.user import User
from app.schemas.provider import (
    ProviderDetailResponse,
    ProviderListItem,
    ProviderProfileResponse,
    ProviderProfileUpdateRequest,
)
from app.schemas.review import ReviewWithCustomerResponse
from app.schemas.service import ServiceSummary
from app.utils.rate_limit import LIST_RATE_LIMIT, limiter

logger = structlog.get_logger()
router = APIRouter()

RECENT_REVIEWS_LIMIT = 10


def _provider_item(user: User) -> dict:
    profile = user.provider_profile
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "city": user.city,
        "image": user.image,
        "profile": ProviderProfileResponse.model_validate(profile) if profile else None,
    }


# --- Static routes first (before /{provider_id}) ---


@router.get("", response_model=list[ProviderListItem])
@limiter.limit(LIST_RATE_LIMIT)
async def list_providers(
    request: Request,
    category: ServiceCategory | None = None,
    city: str | None = Query(None, max_length=100),
    search: str | None = Query(None, max_length=100),
    verified_only: bool = False,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0, le=10000),
    db: AsyncSession = Depends(get_db),
):
    """List active providers, best rated first."""
    stmt = (
        select(User)
        .outerjoin(ProviderProfile, ProviderProfile.user_id == User.id)
        .options(selectinload(User.provider_profile))
        .where(User.role == UserRole.PROVIDER, User.is_active == True)  # noqa: E712
    )
    if category is not None:
        stmt = stmt.where(
            exists().where(
                Service.provider_id == User.id,
                Service.category == category,
                Service.is_active == True,  # noqa: E712
            )
        )
    if city:
        stmt = stmt.where(User.city.ilike(f"%{city.strip()}%"))
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(
            User.name.ilike(pattern),
            ProviderProfile.business_name.ilike(pattern),
            ProviderProfile.bio.ilike(pattern),
        ))
    if verified_only:
        stmt = stmt.where(ProviderProfile.is_verified == True)  # noqa: E712

    stmt = stmt.order_by(ProviderProfile.average_rating.desc(), User.name).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return [ProviderListItem(**_provider_item(u)) for u in result.scalars().all()]


@router.put("/me", response_model=ProviderProfileResponse)
@limiter.limit("30/minute")
async def update_my_profile(
    request: Request,
    body: ProviderProfileUpdateRequest,
    provider: User = Depends(get_current_provider),
    db: AsyncSession = Depends(get_db),
):
    """Update the current provider's profile, creating it on first use."""
    result = await db.execute(select(ProviderProfile).where(ProviderProfile.user_id == provider.id))
    profile = result.scalar_one_or_none()
    if profile is None:
        profile = ProviderProfile(user_id=provider.id)
        db.add(profile)

    UPDATABLE_FIELDS = {"business_name", "bio", "years_experience", "service_areas", "certifications", "availability"}
    update_data = body.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if field in UPDATABLE_FIELDS and value is not None:
            setattr(profile, field, value)

    await db.flush()
    logger.info("provider_profile_updated", provider_id=str(provider.id))
    return ProviderProfileResponse.model_validate(profile)


@router.get("/{provider_id}", response_model=ProviderDetailResponse)
async def get_provider(
    provider_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Provider detail with active services and recent reviews."""
    result = await db.execute(
        select(User)
        .where(User.id == provider_id, User.role == UserRole.PROVIDER)
        .options(selectinload(User.provider_profile))
        .execution_options(populate_existing=True)
    )
    provider = result.scalar_one_or_none()
    if not provider:
        raise NotFoundError("Provider")

    services_result = await db.execute(
        select(Service)
        .where(Service.provider_id == provider_id, Service.is_active == True)  # noqa: E712
        .order_by(Service.created_at.desc())
    )
    reviews_result = await db.execute(
        select(Review)
        .where(Review.provider_id == provider_id)
        .options(selectinload(Review.customer))
        .order_by(Review.created_at.desc())
        .limit(RECENT_REVIEWS_LIMIT)
    )

    return ProviderDetailResponse(
        **_provider_item(provider),
        services=[ServiceSummary.model_validate(s) for s in services_result.scalars().all()],
        recent_reviews=[ReviewWithCustomerResponse.model_validate(r) for r in reviews_result.scalars().all()],
    )
