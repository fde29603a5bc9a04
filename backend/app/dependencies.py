import uuid

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.service import decode_access_token
from app.database import get_db
from app.exceptions import ForbiddenError, UnauthorizedError
from app.models.enums import UserRole
from app.models.user import User
from app.services.notifications import DatabaseNotificationEmitter, NotificationEmitter
from app.utils.booking_state import Actor

logger = structlog.get_logger()
# auto_error=False so a missing header is a 401, not FastAPI's default 403
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Extract and validate JWT token, return the authenticated user."""
    if credentials is None:
        raise UnauthorizedError("Authentication required")

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise UnauthorizedError("Invalid authentication token")

    try:
        parsed_id = uuid.UUID(user_id)
    except ValueError:
        raise UnauthorizedError("Invalid authentication token")

    result = await db.execute(select(User).where(User.id == parsed_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UnauthorizedError("User not found")

    # Block suspended users at the auth level
    if not user.is_active:
        logger.info("suspended_user_rejected", user_id=str(user.id))
        raise ForbiddenError("Account has been suspended. Contact support for more information.")

    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Resolve the caller on public endpoints; None for anonymous requests."""
    if credentials is None:
        return None
    return await get_current_user(credentials, db)


async def get_current_actor(user: User = Depends(get_current_user)) -> Actor:
    return Actor(id=user.id, role=user.role)


async def get_current_customer(
    user: User = Depends(get_current_user),
) -> User:
    """Get current user and verify they are a customer."""
    if user.role != UserRole.CUSTOMER:
        raise ForbiddenError("Only customers can access this resource")
    return user


async def get_current_provider(
    user: User = Depends(get_current_user),
) -> User:
    """Get current user and verify they are a provider."""
    if user.role != UserRole.PROVIDER:
        raise ForbiddenError("Only providers can access this resource")
    return user


async def get_current_admin(
    user: User = Depends(get_current_user),
) -> User:
    """Get current user and verify they are an admin."""
    if user.role != UserRole.ADMIN:
        raise ForbiddenError("Admin access required")
    return user


async def get_notification_emitter(
    db: AsyncSession = Depends(get_db),
) -> NotificationEmitter:
    return DatabaseNotificationEmitter(db)
