"""Service layer for business logic."""

from app.services.authenticator import Authenticator
from app.services.identity import GoogleOAuthClient, IdentityVerifier
from app.services.ooo_service import OOOService
from app.services.reconciler import InFlightRegistry, UserReconciler
from app.services.reimbursement_service import ReimbursementService
from app.services.session_service import SessionService
from app.services.user_service import UserService

__all__ = [
    "Authenticator",
    "GoogleOAuthClient",
    "IdentityVerifier",
    "InFlightRegistry",
    "OOOService",
    "ReimbursementService",
    "SessionService",
    "UserReconciler",
    "UserService",
]
