"""Pydantic schemas for users and identity provider profiles."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator, model_validator


class ProviderProfile(BaseModel):
    """Profile returned by the identity provider's userinfo endpoint."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: Optional[str] = Field(default=None, description="Provider account ID")
    email: str = Field(..., description="Verified email address")
    name: Optional[str] = Field(default=None, description="Display name")
    picture: Optional[str] = Field(default=None, description="Avatar URL")

    @model_validator(mode="before")
    @classmethod
    def normalize_aliases(cls, data: Any) -> Any:
        # Google returns `id` (v2 userinfo) or `sub` (OIDC); adapters send `image`
        if isinstance(data, dict):
            data = dict(data)
            if not data.get("id") and data.get("sub"):
                data["id"] = data["sub"]
            if not data.get("picture") and data.get("image"):
                data["picture"] = data["image"]
        return data

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def identity_key(self) -> tuple[Optional[str], str]:
        """Key used to de-duplicate concurrent reconciliations."""
        return (self.id, self.email)


class UserResponse(BaseModel):
    """Schema for user response."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Internal user identifier")
    name: Optional[str] = Field(default=None, description="Display name")
    email: str = Field(..., description="User email address")
    google_id: Optional[str] = Field(default=None, description="Linked Google account ID")
    avatar: Optional[str] = Field(default=None, description="Avatar URL")
    is_active: bool = Field(..., description="Whether user is active")
    last_login: Optional[datetime] = Field(default=None, description="Last successful sign-in")
    created_at: Optional[datetime] = Field(default=None, description="Account creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp")


class UserEnvelope(BaseModel):
    """Single user wrapped as ``{"user": ...}``."""

    user: UserResponse


class UserProfileCreate(BaseModel):
    """Create-or-update request sent by the frontend auth adapter."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr = Field(..., description="User email address")
    name: Optional[str] = Field(default=None, max_length=255)
    image: Optional[str] = Field(default=None, max_length=2048, description="Avatar URL")
    google_id: Optional[str] = Field(default=None, alias="googleId", description="Google account ID")


class UserUpdate(BaseModel):
    """Editable user fields."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    avatar: Optional[str] = Field(default=None, max_length=2048)
