"""Booking queries shared by the creation and lifecycle flows."""
import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import NotFoundError
from app.models.booking import Booking
from app.utils.booking_state import ACTIVE_STATUSES

SLOT_TAKEN_MESSAGE = "Provider is not available at this time"


async def load_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    for_update: bool = False,
    refresh: bool = False,
) -> Booking:
    """Fetch a booking with its parties, service and review, or raise 404.

    ``for_update`` takes a row lock for the rest of the transaction;
    ``refresh`` overwrites already-loaded state (server-side timestamps).
    """
    stmt = (
        select(Booking)
        .where(Booking.id == booking_id)
        .options(
            selectinload(Booking.customer),
            selectinload(Booking.provider),
            selectinload(Booking.service),
            selectinload(Booking.review),
        )
    )
    if for_update:
        stmt = stmt.with_for_update()
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    result = await db.execute(stmt)
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking")
    return booking


async def find_slot_conflict(
    db: AsyncSession,
    provider_id: uuid.UUID,
    scheduled_date: date,
    scheduled_time: str,
    exclude_booking_id: uuid.UUID | None = None,
) -> Booking | None:
    """Return an active booking already holding the provider's slot, if any."""
    stmt = select(Booking).where(
        Booking.provider_id == provider_id,
        Booking.scheduled_date == scheduled_date,
        Booking.scheduled_time == scheduled_time,
        Booking.status.in_([s.value for s in ACTIVE_STATUSES]),
    )
    if exclude_booking_id is not None:
        stmt = stmt.where(Booking.id != exclude_booking_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none()
