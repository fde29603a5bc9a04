import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, Field, field_validator

from app.models.enums import BookingStatus
from app.schemas.auth import UserSummary
from app.schemas.review import ReviewResponse
from app.schemas.service import ServiceSummary

_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class BookingCreateRequest(BaseModel):
    service_id: uuid.UUID = Field(validation_alias=AliasChoices("service_id", "serviceId"))
    scheduled_date: date = Field(validation_alias=AliasChoices("scheduled_date", "scheduledDate"))
    scheduled_time: str = Field(
        validation_alias=AliasChoices("scheduled_time", "scheduledTime"),
        pattern=_TIME_PATTERN,
        description="Time of day HH:MM",
    )
    address: str = Field(min_length=1, max_length=500)
    notes: str | None = Field(None, max_length=2000)

    @field_validator("address")
    @classmethod
    def address_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("address must not be blank")
        return v.strip()


class BookingUpdateRequest(BaseModel):
    """Partial update. Only fields present in the payload are applied.

    ``notes`` sent as "" or null clears the notes; omitting it keeps them.
    """
    status: BookingStatus | None = None
    scheduled_at: datetime | None = Field(
        None, validation_alias=AliasChoices("scheduled_at", "scheduledAt")
    )
    notes: str | None = Field(None, max_length=2000)


class BookingResponse(BaseModel):
    id: uuid.UUID
    status: BookingStatus
    customer_id: uuid.UUID
    provider_id: uuid.UUID
    service_id: uuid.UUID
    scheduled_date: date
    scheduled_time: str
    address: str
    notes: str | None
    total_price: Decimal
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class BookingDetailResponse(BookingResponse):
    """Booking with its customer, provider, service and review."""
    customer: UserSummary
    provider: UserSummary
    service: ServiceSummary
    review: ReviewResponse | None = None


class BookingListResponse(BaseModel):
    bookings: list[BookingDetailResponse]
    total: int
