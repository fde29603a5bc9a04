import structlog
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.service import create_access_token, hash_password_async, verify_password_async
from app.database import get_db
from app.dependencies import get_current_user
from app.exceptions import ConflictError, UnauthorizedError
from app.metrics import USERS_REGISTERED
from app.models.enums import UserRole
from app.models.provider_profile import ProviderProfile
from app.models.user import User
from app.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
    UserUpdateRequest,
)
from app.utils.log_mask import mask_email
from app.utils.rate_limit import AUTH_RATE_LIMIT, limiter

# Dummy hash for constant-time login failure (prevents timing oracle)
_DUMMY_HASH = "$2b$12$LJ3m4ys3Lg2UxMHFSKDcOedTqJtFHSfVLO7GRFXlI0Xp9jHQvaFYe"

logger = structlog.get_logger()
router = APIRouter()


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_RATE_LIMIT)
async def register(request: Request, response: Response, body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Register a customer or provider. Admin accounts are created with scripts/create_admin.py."""
    response.headers["Cache-Control"] = "no-store"

    result = await db.execute(select(User).where(User.email == body.email))
    if result.scalar_one_or_none():
        raise ConflictError("An account with this email already exists")

    # User and provider profile are created atomically
    try:
        async with db.begin_nested():
            user = User(
                email=body.email,
                password_hash=await hash_password_async(body.password),
                role=UserRole(body.role.value),
                name=body.name,
                phone=body.phone,
                address=body.address,
                city=body.city,
                is_verified=False,
                is_active=True,
            )
            db.add(user)
            await db.flush()

            if user.role == UserRole.PROVIDER:
                db.add(ProviderProfile(user_id=user.id, business_name=body.name))
                await db.flush()
    except IntegrityError:
        # Email was taken between our check and insert
        logger.info("registration_race_condition")
        raise ConflictError("An account with this email already exists")

    USERS_REGISTERED.labels(role=body.role.value).inc()
    logger.info("user_registered", user_id=str(user.id), role=body.role.value)

    return TokenResponse(access_token=create_access_token(str(user.id)))


@router.post("/login", response_model=TokenResponse)
@limiter.limit(AUTH_RATE_LIMIT)
async def login(request: Request, response: Response, body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate a user and return an access token."""
    response.headers["Cache-Control"] = "no-store"

    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()

    if not user:
        # Hash against dummy to prevent timing-based email enumeration
        await verify_password_async(body.password, _DUMMY_HASH)
        logger.warning("login_failed", email=mask_email(body.email), reason="unknown_email")
        raise UnauthorizedError("Invalid email or password")
    if not await verify_password_async(body.password, user.password_hash):
        logger.warning("login_failed", email=mask_email(body.email), reason="bad_password")
        raise UnauthorizedError("Invalid email or password")

    logger.info("user_login", user_id=str(user.id))
    return TokenResponse(access_token=create_access_token(str(user.id)))


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return user


@router.patch("/me", response_model=UserResponse)
@limiter.limit(AUTH_RATE_LIMIT)
async def update_me(
    request: Request,
    body: UserUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update current user's personal information."""
    # Only allow updating specific fields to prevent arbitrary attribute setting
    UPDATABLE_FIELDS = {"name", "phone", "address", "city", "image"}
    update_data = body.model_dump(exclude_unset=True)

    for field, value in update_data.items():
        if field not in UPDATABLE_FIELDS:
            continue
        if field == "name" and not value:
            continue
        setattr(user, field, value)

    await db.flush()
    logger.info("user_profile_updated", user_id=str(user.id), fields=sorted(update_data))
    return user
