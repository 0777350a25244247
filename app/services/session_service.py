"""Session service: issue, sign, refresh and expose browser sessions."""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from jose import jwt, JWTError
from pydantic import ValidationError

from app.config import Settings
from app.models.user import User
from app.schemas.session import (
    REFRESH_ERROR,
    SessionPayload,
    SessionUser,
    SessionView,
)
from app.services.exceptions import IdentityProviderError
from app.services.identity import GoogleOAuthClient

logger = logging.getLogger(__name__)

# JWT settings
ALGORITHM = "HS256"


def expires_at_ms(tokens: dict[str, Any]) -> int:
    """Normalize a provider token response's expiry (epoch seconds) to milliseconds."""
    return int(tokens["expires_at"]) * 1000


class SessionService:
    """
    Maintains the signed session payload carried across browser requests.

    The payload embeds the provider's access and refresh tokens, the access
    token expiry and a snapshot of the reconciled user. Once the access token
    expires the payload is refreshed; a failed refresh keeps the payload but
    marks it with ``REFRESH_ERROR`` so callers force a new sign-in.
    """

    def __init__(
        self,
        settings: Settings,
        oauth_client: GoogleOAuthClient,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the session service.

        Args:
            settings: Application settings (signing secret, session max age)
            oauth_client: Client used to refresh expired access tokens
            clock: Returns the current epoch time in seconds
        """
        self.settings = settings
        self.oauth_client = oauth_client
        self.clock = clock

    def issue(self, tokens: dict[str, Any], user: User) -> SessionPayload:
        """
        Build the payload for an initial sign-in.

        Args:
            tokens: Normalized provider token response
            user: Reconciled local user

        Returns:
            New SessionPayload
        """
        payload = SessionPayload(
            access_token=tokens["access_token"],
            refresh_token=tokens.get("refresh_token"),
            access_token_expires=expires_at_ms(tokens),
            user=SessionUser(id=user.id, name=user.name, email=user.email, avatar=user.avatar),
        )
        logger.info(f"Issued session for user {user.id}")
        return payload

    def is_expired(self, payload: SessionPayload) -> bool:
        return self.clock() * 1000 >= payload.access_token_expires

    async def ensure_fresh(self, payload: SessionPayload) -> SessionPayload:
        """
        Return the payload unchanged while valid, otherwise a refreshed copy.

        A refresh failure returns a copy carrying the ``REFRESH_ERROR`` marker.
        """
        if not self.is_expired(payload):
            return payload

        if not payload.refresh_token:
            logger.warning(f"Session for user {payload.user.id} expired without a refresh token")
            return payload.model_copy(update={"error": REFRESH_ERROR})

        try:
            tokens = await self.oauth_client.refresh_access_token(payload.refresh_token)
        except IdentityProviderError as e:
            logger.error(f"Error refreshing access token for user {payload.user.id}: {e.message}")
            return payload.model_copy(update={"error": REFRESH_ERROR})

        logger.info(f"Refreshed access token for user {payload.user.id}")
        return payload.model_copy(update={
            "access_token": tokens["access_token"],
            "access_token_expires": expires_at_ms(tokens),
            "refresh_token": tokens.get("refresh_token") or payload.refresh_token,
            "error": None,
        })

    def encode(self, payload: SessionPayload) -> str:
        """Sign a payload as a JWT valid for ``SESSION_MAX_AGE`` seconds."""
        now = datetime.fromtimestamp(self.clock(), tz=timezone.utc)
        claims = payload.model_dump()
        claims.update({
            "sub": str(payload.user.id),
            "iat": now,
            "exp": now + timedelta(seconds=self.settings.SESSION_MAX_AGE),
        })
        return jwt.encode(claims, self.settings.SECRET_KEY, algorithm=ALGORITHM)

    def decode(self, token: Optional[str]) -> Optional[SessionPayload]:
        """
        Verify a signed session and extract its payload.

        Returns:
            SessionPayload, or None if the token is missing, tampered or expired
        """
        if not token:
            return None
        try:
            claims = jwt.decode(
                token,
                self.settings.SECRET_KEY,
                algorithms=[ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as e:
            logger.warning(f"Invalid session token: {e}")
            return None

        if claims.get("exp", 0) <= self.clock():
            logger.info("Session token expired")
            return None

        try:
            return SessionPayload.model_validate(claims)
        except ValidationError:
            logger.warning("Session token carries an invalid payload")
            return None

    @staticmethod
    def to_public(payload: SessionPayload) -> SessionView:
        """Client-visible view of a session; the refresh token is never exposed."""
        return SessionView(
            user=payload.user,
            access_token=payload.access_token,
            access_token_expires=payload.access_token_expires,
            error=payload.error,
        )
