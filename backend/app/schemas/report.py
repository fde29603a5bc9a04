import uuid
from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from app.models.enums import ReportStatus, ReportType
from app.schemas.auth import UserSummary


class ReportCreateRequest(BaseModel):
    type: ReportType
    reason: str = Field(min_length=3, max_length=255)
    description: str | None = Field(None, max_length=5000)
    target_user_id: uuid.UUID | None = None
    target_service_id: uuid.UUID | None = None
    target_review_id: uuid.UUID | None = None
    target_booking_id: uuid.UUID | None = None

    @model_validator(mode="after")
    def has_target(self) -> "ReportCreateRequest":
        if not any((self.target_user_id, self.target_service_id, self.target_review_id, self.target_booking_id)):
            raise ValueError("A target must be specified")
        return self


class ReportUpdateRequest(BaseModel):
    status: ReportStatus | None = None
    resolution: str | None = Field(None, max_length=5000)


class ReportResponse(BaseModel):
    id: uuid.UUID
    reporter_id: uuid.UUID
    type: ReportType
    reason: str
    description: str | None
    status: ReportStatus
    resolution: str | None
    target_user_id: uuid.UUID | None
    target_service_id: uuid.UUID | None
    target_review_id: uuid.UUID | None
    target_booking_id: uuid.UUID | None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class ReportDetailResponse(ReportResponse):
    reporter: UserSummary | None = None


class ReportListResponse(BaseModel):
    reports: list[ReportDetailResponse]
    total: int
