import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.enums import BookingStatus
from app.models.types import GUID

# Statuses that hold a provider's time slot. Kept in sync with ACTIVE_STATUSES
# in app.utils.booking_state.
_ACTIVE_SLOT_PREDICATE = text("status IN ('REQUESTED', 'CONFIRMED', 'IN_PROGRESS')")


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("total_price >= 0", name="ck_booking_total_price_positive"),
        Index("ix_booking_customer_created", "customer_id", "created_at"),
        Index("ix_booking_provider_created", "provider_id", "created_at"),
        # One active booking per provider slot; turns a lost check-then-insert race into an IntegrityError
        Index(
            "uq_booking_provider_active_slot",
            "provider_id",
            "scheduled_date",
            "scheduled_time",
            unique=True,
            postgresql_where=_ACTIVE_SLOT_PREDICATE,
            sqlite_where=_ACTIVE_SLOT_PREDICATE,
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[BookingStatus] = mapped_column(
        String(20), nullable=False, default=BookingStatus.REQUESTED, index=True
    )
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    # "HH:MM"
    scheduled_time: Mapped[str] = mapped_column(String(5), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Snapshot of the service price at booking time, never recalculated
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    customer: Mapped["User"] = relationship("User", foreign_keys=[customer_id], lazy="raise")
    provider: Mapped["User"] = relationship("User", foreign_keys=[provider_id], lazy="raise")
    service: Mapped["Service"] = relationship("Service", lazy="raise")
    review: Mapped["Review | None"] = relationship(
        "Review", back_populates="booking", uselist=False, lazy="raise", cascade="all, delete-orphan"
    )
