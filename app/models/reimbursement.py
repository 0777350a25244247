"""Reimbursement request model."""

from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Text, Enum, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.db.base import Base


class ReimbursementStatus(str, PyEnum):
    """Lifecycle states of a reimbursement request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class Reimbursement(Base):
    """
    Employee reimbursement request.

    The invoice attachment lives in blob storage; only its key and
    descriptive metadata are kept here.
    """

    __tablename__ = "reimbursements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    description = Column(Text, nullable=True)
    invoice_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        Enum(ReimbursementStatus, name="reimbursement_status",
             values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ReimbursementStatus.PENDING,
        index=True,
    )

    # Attachment
    file_key = Column(String(512), nullable=True)
    file_name = Column(String(255), nullable=True)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", backref="reimbursements")

    def __repr__(self) -> str:
        return f"<Reimbursement(id={self.id}, amount={self.amount}, status={self.status})>"
