"""Authentication endpoints: Google sign-in, session and logout."""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from app.api.dependencies import (
    SESSION_KEY,
    get_browser_session,
    get_current_user,
    get_oauth_client,
    get_reconciler,
    get_session_service,
    unauthenticated_exception,
)
from app.config import settings
from app.models.user import User
from app.schemas.session import (
    SessionPayload,
    SessionView,
    TokenRefreshRequest,
    TokenRefreshResponse,
)
from app.schemas.user import ProviderProfile, UserEnvelope, UserResponse
from app.services.authenticator import INACTIVE_USER, SESSION_EXPIRED, Unauthenticated
from app.services.exceptions import (
    DomainNotAllowedError,
    IdentityProviderError,
    ReconciliationError,
)
from app.services.identity import GoogleOAuthClient
from app.services.reconciler import UserReconciler
from app.services.session_service import SessionService, expires_at_ms

logger = logging.getLogger(__name__)

router = APIRouter()

OAUTH_STATE_KEY = "oauth_state"

NO_SESSION = Unauthenticated(
    code="NO_SESSION",
    error="Not signed in",
    message="No active session",
)


@router.get(
    "/google",
    response_class=RedirectResponse,
    summary="Sign in with Google",
    description="Redirect to the Google consent screen.",
)
def login_with_google(
    request: Request,
    oauth_client: GoogleOAuthClient = Depends(get_oauth_client),
) -> RedirectResponse:
    """Start the authorization code flow."""
    state = secrets.token_urlsafe(32)
    request.session[OAUTH_STATE_KEY] = state
    return RedirectResponse(url=oauth_client.authorization_url(state), status_code=status.HTTP_302_FOUND)


@router.get(
    "/google/callback",
    response_class=RedirectResponse,
    summary="Google OAuth callback",
    description="""
    Exchange the authorization code, reconcile the Google profile with the
    local user table, store the session and redirect to the application.
    """,
)
async def google_callback(
    request: Request,
    code: Optional[str] = Query(None, description="Authorization code"),
    state: Optional[str] = Query(None, description="CSRF state"),
    error: Optional[str] = Query(None, description="Error returned by Google"),
    oauth_client: GoogleOAuthClient = Depends(get_oauth_client),
    reconciler: UserReconciler = Depends(get_reconciler),
    session_service: SessionService = Depends(get_session_service),
) -> RedirectResponse:
    """Complete Google sign-in."""
    expected_state = request.session.pop(OAUTH_STATE_KEY, None)

    if error:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Authentication failed", "message": error, "loginUrl": settings.LOGIN_URL},
        )

    if not code or not state or state != expected_state:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Invalid request",
                "message": "Missing or invalid OAuth state. Please try again.",
                "loginUrl": settings.LOGIN_URL,
            },
        )

    try:
        tokens = await oauth_client.exchange_code(code)
        profile = ProviderProfile.model_validate(
            await oauth_client.fetch_userinfo(tokens["access_token"])
        )
    except (IdentityProviderError, ValidationError) as e:
        logger.error(f"OAuth callback error: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "Authentication failed", "message": "Could not complete Google login"},
        )

    try:
        user = await reconciler.reconcile(profile)
    except DomainNotAllowedError as e:
        logger.warning(f"Rejected sign-in for {profile.email}: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "Access Denied",
                "message": e.message,
                "suggestion": "Please contact your administrator if you believe this is an error.",
            },
        )
    except ReconciliationError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Authentication failed", "message": e.message},
        )

    if not user.is_active:
        raise unauthenticated_exception(INACTIVE_USER)

    payload = session_service.issue(tokens, user)
    request.session[SESSION_KEY] = session_service.encode(payload)

    logger.info(f"User logged in: {user.email}")
    return RedirectResponse(url=settings.POST_LOGIN_REDIRECT, status_code=status.HTTP_302_FOUND)


@router.get(
    "/me",
    response_model=UserEnvelope,
    summary="Get current user",
    description="Get the currently authenticated user's information.",
)
def get_me(current_user: User = Depends(get_current_user)) -> UserEnvelope:
    """Get current user information."""
    return UserEnvelope(user=UserResponse.model_validate(current_user))


@router.get(
    "/session",
    response_model=SessionView,
    summary="Get current session",
    description="Client-visible session data. Expired access tokens are refreshed first.",
)
def get_session(
    session: Optional[SessionPayload] = Depends(get_browser_session),
) -> SessionView:
    """Return the public view of the browser session."""
    if session is None:
        raise unauthenticated_exception(NO_SESSION)
    if session.error:
        raise unauthenticated_exception(SESSION_EXPIRED)
    return SessionService.to_public(session)


@router.post(
    "/refresh",
    response_model=TokenRefreshResponse,
    summary="Refresh an access token",
    description="Exchange a Google refresh token for a new access token.",
)
async def refresh_token(
    data: TokenRefreshRequest,
    oauth_client: GoogleOAuthClient = Depends(get_oauth_client),
) -> TokenRefreshResponse:
    """Refresh a provider access token."""
    try:
        tokens = await oauth_client.refresh_access_token(data.refresh_token)
    except IdentityProviderError as e:
        logger.warning(f"Refresh rejected: {e.message}")
        raise unauthenticated_exception(
            Unauthenticated(code="REFRESH_FAILED", error="Refresh failed", message=e.message)
        )

    return TokenRefreshResponse(
        access_token=tokens["access_token"],
        access_token_expires=expires_at_ms(tokens),
        refresh_token=tokens.get("refresh_token") or data.refresh_token,
    )


@router.get(
    "/logout",
    summary="Log out",
    description="Destroy the browser session.",
)
def logout(request: Request) -> dict:
    """Clear the session."""
    request.session.clear()
    return {"message": "Logged out successfully", "loginUrl": settings.LOGIN_URL}
