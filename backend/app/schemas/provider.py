import uuid

from pydantic import BaseModel, Field

from app.schemas.review import ReviewWithCustomerResponse
from app.schemas.service import ServiceSummary


class ProviderProfileResponse(BaseModel):
    business_name: str | None
    bio: str | None
    years_experience: int
    service_areas: list[str]
    certifications: list[str]
    availability: dict
    is_verified: bool
    completed_jobs: int
    average_rating: float
    total_reviews: int

    model_config = {"from_attributes": True}


class ProviderListItem(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    phone: str | None = None
    city: str | None = None
    image: str | None = None
    profile: ProviderProfileResponse | None = None


class ProviderDetailResponse(ProviderListItem):
    services: list[ServiceSummary]
    recent_reviews: list[ReviewWithCustomerResponse]


class ProviderProfileUpdateRequest(BaseModel):
    business_name: str | None = Field(None, max_length=150)
    bio: str | None = Field(None, max_length=2000)
    years_experience: int | None = Field(None, ge=0, le=80)
    service_areas: list[str] | None = Field(None, max_length=50)
    certifications: list[str] | None = Field(None, max_length=50)
    availability: dict[str, str] | None = None
