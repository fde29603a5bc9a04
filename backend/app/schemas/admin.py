from pydantic import BaseModel, Field

from app.models.enums import UserRole
from app.schemas.auth import UserResponse


class AdminUserUpdateRequest(BaseModel):
    role: UserRole | None = None
    is_active: bool | None = None
    is_verified: bool | None = None
    reason: str | None = Field(None, max_length=500)


class AdminUserListResponse(BaseModel):
    users: list[UserResponse]
    total: int
