"""Pydantic schemas for request/response validation."""

from app.schemas.user import (
    ProviderProfile,
    UserResponse,
    UserEnvelope,
    UserProfileCreate,
    UserUpdate,
)
from app.schemas.session import (
    SessionUser,
    SessionPayload,
    SessionView,
    TokenRefreshRequest,
    TokenRefreshResponse,
)
from app.schemas.reimbursement import (
    ReimbursementResponse,
    ReimbursementUpdate,
    ReimbursementList,
)
from app.schemas.ooo import (
    OOOCreate,
    OOOUpdate,
    OOOResponse,
    OOOList,
)

__all__ = [
    "ProviderProfile",
    "UserResponse",
    "UserEnvelope",
    "UserProfileCreate",
    "UserUpdate",
    "SessionUser",
    "SessionPayload",
    "SessionView",
    "TokenRefreshRequest",
    "TokenRefreshResponse",
    "ReimbursementResponse",
    "ReimbursementUpdate",
    "ReimbursementList",
    "OOOCreate",
    "OOOUpdate",
    "OOOResponse",
    "OOOList",
]
