import uuid
from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

from app.schemas.auth import UserSummary


class ReviewCreateRequest(BaseModel):
    booking_id: uuid.UUID = Field(validation_alias=AliasChoices("booking_id", "request_id", "requestId"))
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(None, max_length=1000)


class ReviewResponse(BaseModel):
    id: uuid.UUID
    booking_id: uuid.UUID
    customer_id: uuid.UUID
    provider_id: uuid.UUID
    service_id: uuid.UUID
    rating: int
    comment: str | None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ReviewWithCustomerResponse(ReviewResponse):
    customer: UserSummary | None = None
