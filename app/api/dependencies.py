"""API dependencies for dependency injection."""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.config import settings
from app.db.session import get_db
from app.models.user import User
from app.schemas.session import SessionPayload
from app.schemas.user import ProviderProfile
from app.storage.blob_storage import S3Storage, BlobStorage
from app.services.authenticator import (
    Authenticated,
    AuthFailure,
    AuthResult,
    Authenticator,
    Unauthenticated,
)
from app.services.identity import GoogleOAuthClient, IdentityVerifier
from app.services.ooo_service import OOOService
from app.services.reconciler import InFlightRegistry, UserReconciler
from app.services.reimbursement_service import ReimbursementService
from app.services.session_service import SessionService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

# Key of the signed session JWT inside the cookie-backed session
SESSION_KEY = "session_token"


def get_blob_storage() -> BlobStorage:
    """Get blob storage client."""
    return S3Storage()


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Get user service instance."""
    return UserService(db)


def get_reimbursement_service(
    db: Session = Depends(get_db),
    blob_storage: BlobStorage = Depends(get_blob_storage),
) -> ReimbursementService:
    """Get reimbursement service instance."""
    return ReimbursementService(db, blob_storage)


def get_ooo_service(db: Session = Depends(get_db)) -> OOOService:
    """Get out-of-office service instance."""
    return OOOService(db)


def get_oauth_client() -> GoogleOAuthClient:
    """Get Google OAuth client."""
    return GoogleOAuthClient(settings)


def get_identity_verifier(
    oauth_client: GoogleOAuthClient = Depends(get_oauth_client),
) -> IdentityVerifier:
    """Get bearer token verifier."""
    return IdentityVerifier(oauth_client, settings.ALLOWED_DOMAIN)


def get_inflight_registry(request: Request) -> InFlightRegistry:
    """Get the application-wide pending creation guard."""
    return request.app.state.inflight_registry


def get_reconciler(
    user_service: UserService = Depends(get_user_service),
    registry: InFlightRegistry = Depends(get_inflight_registry),
) -> UserReconciler:
    """Get user reconciler instance."""
    return UserReconciler(user_service, registry, settings.ALLOWED_DOMAIN)


def get_authenticator(
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    reconciler: UserReconciler = Depends(get_reconciler),
) -> Authenticator:
    """Get request authenticator."""
    return Authenticator(verifier, reconciler, auto_provision=settings.AUTO_PROVISION_USERS)


def get_session_service(
    oauth_client: GoogleOAuthClient = Depends(get_oauth_client),
) -> SessionService:
    """Get session service instance."""
    return SessionService(settings, oauth_client)


async def get_browser_session(
    request: Request,
    session_service: SessionService = Depends(get_session_service),
) -> Optional[SessionPayload]:
    """
    Load the browser session, refreshing the access token when expired.

    A refreshed (or newly error-marked) payload is written back so the
    refresh happens once per expiry.
    """
    payload = session_service.decode(request.session.get(SESSION_KEY))
    if payload is None:
        return None

    fresh = await session_service.ensure_fresh(payload)
    if fresh is not payload:
        request.session[SESSION_KEY] = session_service.encode(fresh)
    return fresh


def unauthenticated_exception(result: Unauthenticated) -> HTTPException:
    """Build the 401 response for a rejected credential."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "code": result.code,
            "error": result.error,
            "message": result.message,
            "loginUrl": settings.LOGIN_URL,
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_auth_result(
    authorization: Optional[str] = Header(default=None),
    session: Optional[SessionPayload] = Depends(get_browser_session),
    authenticator: Authenticator = Depends(get_authenticator),
) -> AuthResult:
    """Authenticate the request without deciding how to react."""
    return await authenticator.authenticate(authorization, session)


def require_auth(result: AuthResult = Depends(get_auth_result)) -> Authenticated:
    """
    Gate for protected routes.

    Raises:
        HTTPException: 401 for authentication rejections, 500 if the
            check itself failed
    """
    if isinstance(result, Authenticated):
        return result

    if isinstance(result, Unauthenticated):
        raise unauthenticated_exception(result)

    message = result.message if isinstance(result, AuthFailure) else "Failed to verify authentication"
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"code": "AUTHENTICATION_ERROR", "error": "Authentication error", "message": message},
    )


def get_current_user(auth: Authenticated = Depends(require_auth)) -> User:
    """Get the current authenticated user."""
    return auth.user


async def optional_auth(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    authenticator: Authenticator = Depends(get_authenticator),
    session_service: SessionService = Depends(get_session_service),
) -> Optional[Authenticated]:
    """
    Gate for routes that serve anonymous and authenticated callers alike.

    Never raises: any failure continues the request anonymously.
    """
    try:
        session = await get_browser_session(request, session_service)
        result = await authenticator.authenticate(authorization, session)
    except Exception:
        logger.exception("Optional auth error")
        return None

    return result if isinstance(result, Authenticated) else None


async def get_verified_identity(
    authorization: Optional[str] = Header(default=None),
    authenticator: Authenticator = Depends(get_authenticator),
) -> ProviderProfile:
    """
    Verify the bearer token with the identity provider only.

    Used where the caller may not have a local user yet.
    """
    identity = await authenticator.verify_identity(authorization)
    if isinstance(identity, Unauthenticated):
        raise unauthenticated_exception(identity)
    return identity
