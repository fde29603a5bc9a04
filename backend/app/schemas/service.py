import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.models.enums import PriceType, ServiceCategory
from app.schemas.auth import UserSummary


class ServiceCreateRequest(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    description: str = Field("", max_length=5000)
    category: ServiceCategory
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    price_type: PriceType = PriceType.FIXED
    location: str | None = Field(None, max_length=255)
    images: list[str] = Field(default_factory=list, max_length=10)


class ServiceUpdateRequest(BaseModel):
    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    category: ServiceCategory | None = None
    price: Decimal | None = Field(None, gt=0, max_digits=10, decimal_places=2)
    price_type: PriceType | None = None
    location: str | None = Field(None, max_length=255)
    images: list[str] | None = Field(None, max_length=10)
    is_active: bool | None = None


class ServiceSummary(BaseModel):
    id: uuid.UUID
    title: str
    category: ServiceCategory
    price: Decimal
    price_type: PriceType
    location: str | None

    model_config = {"from_attributes": True}


class ServiceResponse(ServiceSummary):
    provider_id: uuid.UUID
    description: str
    images: list[str]
    is_active: bool
    created_at: datetime | None = None
    provider: UserSummary | None = None


class ServiceListResponse(BaseModel):
    services: list[ServiceResponse]
    total: int
