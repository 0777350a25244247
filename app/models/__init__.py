"""Database models."""

from app.models.user import User
from app.models.reimbursement import Reimbursement, ReimbursementStatus
from app.models.ooo import OutOfOffice

__all__ = ["User", "Reimbursement", "ReimbursementStatus", "OutOfOffice"]
