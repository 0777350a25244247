"""Pydantic schemas for out-of-office endpoints."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator, model_validator


def as_naive_utc(value: datetime) -> datetime:
    """Normalize to naive UTC so offset-aware and naive dates compare."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class OOOCreate(BaseModel):
    """Schema for announcing an out-of-office period."""

    user_name: str = Field(..., min_length=1, max_length=255)
    user_email: EmailStr = Field(...)
    active: bool = Field(default=True)
    start_date: datetime = Field(...)
    end_date: datetime = Field(...)
    reason: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    emergency_contact: Optional[str] = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def check_date_range(self) -> "OOOCreate":
        if as_naive_utc(self.end_date) <= as_naive_utc(self.start_date):
            raise ValueError("End date must be after start date")
        return self


class OOOUpdate(BaseModel):
    """Partial update; the resulting date range is validated by the service."""

    active: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    reason: Optional[str] = Field(default=None, min_length=1)
    message: Optional[str] = Field(default=None, min_length=1)
    emergency_contact: Optional[str] = Field(default=None, max_length=255)

    @field_validator("active", "start_date", "end_date", "reason", "message", mode="before")
    @classmethod
    def reject_null(cls, v):
        # Omit a field to leave it unchanged; only emergency_contact can be cleared
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class OOOResponse(BaseModel):
    """Schema for an out-of-office record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_name: str
    user_email: str
    active: bool
    start_date: datetime
    end_date: datetime
    reason: str
    message: str
    emergency_contact: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OOOList(BaseModel):
    """Paginated out-of-office listing."""

    ooo: list[OOOResponse]
    total: int
