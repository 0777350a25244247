"""Pydantic schemas for reimbursement endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from app.models.reimbursement import ReimbursementStatus


class ReimbursementResponse(BaseModel):
    """Schema for a reimbursement request."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Reimbursement identifier")
    user_id: int = Field(..., description="Owner user ID")
    amount: Decimal = Field(..., description="Requested amount")
    currency: str = Field(..., description="ISO 4217 currency code")
    description: Optional[str] = Field(default=None)
    invoice_date: datetime = Field(..., description="Invoice date")
    status: ReimbursementStatus = Field(..., description="Current status")
    file_name: Optional[str] = Field(default=None, description="Original attachment filename")
    file_size: Optional[int] = Field(default=None, description="Attachment size in bytes")
    mime_type: Optional[str] = Field(default=None, description="Attachment MIME type")
    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)


class ReimbursementUpdate(BaseModel):
    """Only the description of a pending request may change."""

    description: Optional[str] = Field(default=None, max_length=5000)


class ReimbursementList(BaseModel):
    """Paginated reimbursement listing."""

    reimbursements: list[ReimbursementResponse]
    total: int
