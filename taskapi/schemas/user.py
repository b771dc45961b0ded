"""Pydantic schemas for User model."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from taskapi.models.user import UserRole, normalize_email
from taskapi.schemas.common import drop_identity_fields

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+$"


class UserCreate(BaseModel):
    """Schema for creating a user."""

    name: str = Field(..., min_length=1, max_length=255, description="Full name of the user")
    email: str = Field(..., min_length=1, max_length=255, pattern=EMAIL_PATTERN, description="Unique email address")
    phone_number: str = Field(..., min_length=1, max_length=64, description="Contact phone number")
    role: UserRole = Field(UserRole.CONTRIBUTOR, description="Role in the system")
    profile_picture: str | None = Field(None, max_length=1024, description="Avatar URL")

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return normalize_email(value)


class UserUpdate(BaseModel):
    """Schema for updating a user. Every field is optional."""

    name: str | None = Field(None, min_length=1, max_length=255)
    email: str | None = Field(None, min_length=1, max_length=255, pattern=EMAIL_PATTERN)
    phone_number: str | None = Field(None, min_length=1, max_length=64)
    role: UserRole | None = None
    profile_picture: str | None = Field(None, max_length=1024)

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    @model_validator(mode="before")
    @classmethod
    def strip_identity(cls, data: Any) -> Any:
        """Ignore `id`/`_id` keys; identifiers cannot be changed."""
        return drop_identity_fields(data)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str | None) -> str | None:
        return normalize_email(value) if value is not None else None


class UserResponse(BaseModel):
    """Schema returned from API."""

    id: str
    name: str
    email: str
    phone_number: str
    role: UserRole
    profile_picture: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    assigned_tasks: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class UserCreated(BaseModel):
    """Envelope returned after creating a user."""

    message: str
    id: str
    user: UserResponse


__all__ = [
    "EMAIL_PATTERN",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "UserCreated",
]
