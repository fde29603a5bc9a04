import uuid
from dataclasses import dataclass, field
from typing import Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import NotificationType, UserRole
from app.models.notification import Notification
from app.metrics import NOTIFICATION_FAILURES
from app.models.user import User

logger = structlog.get_logger()


@dataclass(frozen=True)
class NotificationDraft:
    """A notification ready to be recorded for one recipient."""

    user_id: uuid.UUID
    title: str
    message: str
    type: NotificationType
    data: dict = field(default_factory=dict)


class NotificationEmitter(Protocol):
    async def emit(self, draft: NotificationDraft) -> None: ...


async def create_notification(
    db: AsyncSession,
    user_id: uuid.UUID,
    notification_type: NotificationType | str,
    title: str,
    message: str,
    data: dict | None = None,
) -> Notification:
    """Persist an in-app notification."""
    type_value = notification_type.value if hasattr(notification_type, "value") else notification_type
    notification = Notification(
        user_id=user_id,
        type=type_value,
        title=title,
        message=message,
        data=dict(data) if data else None,
    )
    db.add(notification)
    await db.flush()
    return notification


class DatabaseNotificationEmitter:
    """Records notifications in the caller's session, inside a SAVEPOINT.

    A failed insert only rolls back the savepoint, so the surrounding
    booking change stays intact.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def emit(self, draft: NotificationDraft) -> None:
        async with self.db.begin_nested():
            await create_notification(
                self.db,
                user_id=draft.user_id,
                notification_type=draft.type,
                title=draft.title,
                message=draft.message,
                data=draft.data,
            )
        logger.info("notification_created", user_id=str(draft.user_id), title=draft.title)


async def emit_best_effort(emitter: NotificationEmitter, draft: NotificationDraft | None) -> bool:
    """Emit ``draft`` and never propagate a delivery failure.

    Returns True when the notification was recorded.
    """
    if draft is None:
        return False
    try:
        await emitter.emit(draft)
    except Exception:
        NOTIFICATION_FAILURES.inc()
        logger.exception(
            "notification_emit_failed",
            user_id=str(draft.user_id),
            title=draft.title,
            type=draft.type.value,
        )
        return False
    return True


async def notify_admins(
    db: AsyncSession,
    emitter: NotificationEmitter,
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.REPORT,
    data: dict | None = None,
) -> int:
    """Fan a notification out to every active admin. Returns how many were recorded."""
    result = await db.execute(
        select(User.id).where(User.role == UserRole.ADMIN, User.is_active.is_(True))
    )
    sent = 0
    for admin_id in result.scalars().all():
        draft = NotificationDraft(
            user_id=admin_id, title=title, message=message, type=notification_type, data=data or {}
        )
        if await emit_best_effort(emitter, draft):
            sent += 1
    return sent
