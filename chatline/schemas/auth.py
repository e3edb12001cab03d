"""
Pydantic schemas for account and session endpoints.

Password length is enforced by the credential hasher, not here, so every
weak-password rejection goes through the same error path.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_serializer, field_validator

from ..models.user import USERNAME_MAX_LENGTH, USERNAME_MIN_LENGTH
from ..utils.time_utils import isoformat_z
from .common import CAMEL_CONFIG


def _normalize_username(value: str) -> str:
    value = value.strip()
    if not USERNAME_MIN_LENGTH <= len(value) <= USERNAME_MAX_LENGTH:
        raise ValueError(f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters")
    return value


class RegisterRequest(BaseModel):
    """Schema for creating a new account."""

    email: EmailStr = Field(..., description="Account email address")
    username: str = Field(..., description="Public display name")
    password: str = Field(..., description="Plaintext password, at least 8 characters")

    model_config = CAMEL_CONFIG

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return _normalize_username(v)


class LoginRequest(BaseModel):
    """Schema for logging in."""

    email: EmailStr = Field(..., description="Account email address")
    password: str = Field(..., description="Plaintext password")

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class UpdateProfileRequest(BaseModel):
    """Schema for updating the caller's profile; omitted fields are left unchanged."""

    username: str | None = Field(None, description="New display name")
    profile_pic: str | None = Field(None, max_length=2048, description="Profile picture URL")

    model_config = CAMEL_CONFIG

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str | None) -> str | None:
        return None if v is None else _normalize_username(v)


class UserPublic(BaseModel):
    """Public view of an account."""

    id: uuid.UUID = Field(..., alias="_id", description="User id")
    email: str
    username: str
    profile_pic: str | None = None
    created_at: datetime

    model_config = CAMEL_CONFIG

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return isoformat_z(value)
