import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.enums import UserRole


def validate_password_complexity(password: str) -> str:
    """Validate password contains at least one letter and one digit."""
    if not any(c.isalpha() for c in password) or not any(c.isdigit() for c in password):
        raise ValueError("Password must contain at least one letter and one digit")
    return password


class RegistrationRole(str, Enum):
    CUSTOMER = "CUSTOMER"
    PROVIDER = "PROVIDER"


class RegisterRequest(BaseModel):
    name: str = Field(min_length=2, max_length=150)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    role: RegistrationRole = RegistrationRole.CUSTOMER
    phone: str | None = Field(None, pattern=r"^\+?[0-9]{10,15}$")
    address: str | None = Field(None, max_length=500)
    city: str | None = Field(None, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must contain at least 2 characters")
        return v

    @field_validator("password")
    @classmethod
    def password_complexity(cls, v: str) -> str:
        return validate_password_complexity(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserSummary(BaseModel):
    """Public view of a user nested in bookings, services and reviews."""
    id: uuid.UUID
    name: str
    email: str
    phone: str | None = None
    image: str | None = None

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    role: UserRole
    phone: str | None
    address: str | None
    city: str | None = None
    image: str | None = None
    is_verified: bool
    is_active: bool
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class UserUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=2, max_length=150)
    phone: str | None = Field(None, pattern=r"^\+?[0-9]{10,15}$")
    address: str | None = Field(None, max_length=500)
    city: str | None = Field(None, max_length=100)
    image: str | None = Field(None, max_length=500)
