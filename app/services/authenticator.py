"""
Per-request authentication.

``Authenticator.authenticate`` turns request credentials into an explicit
result instead of mutating the request:

- ``Authenticated``: verified token mapped to an active local user
- ``Unauthenticated``: the caller is not allowed in (401 in required mode)
- ``AuthFailure``: something broke while checking (500 in required mode)

The API layer decides what to do with each variant; optional endpoints
treat everything but ``Authenticated`` as anonymous.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from app.models.user import User
from app.schemas.session import SessionPayload
from app.schemas.user import ProviderProfile
from app.services.exceptions import DomainNotAllowedError, ReconciliationError
from app.services.identity import IdentityVerifier
from app.services.reconciler import UserReconciler

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Authenticated:
    user: User
    identity: ProviderProfile


@dataclass(frozen=True)
class Unauthenticated:
    code: str
    error: str
    message: str


@dataclass(frozen=True)
class AuthFailure:
    message: str


AuthResult = Union[Authenticated, Unauthenticated, AuthFailure]


AUTH_REQUIRED = Unauthenticated(
    code="AUTH_REQUIRED",
    error="Authentication required",
    message="Please provide a valid Bearer token",
)
INVALID_TOKEN = Unauthenticated(
    code="INVALID_TOKEN",
    error="Invalid token",
    message="The provided token is invalid or expired",
)
SESSION_EXPIRED = Unauthenticated(
    code="SESSION_EXPIRED",
    error="Session expired",
    message="Your session could not be refreshed. Please sign in again.",
)
USER_NOT_FOUND = Unauthenticated(
    code="USER_NOT_FOUND",
    error="User not found",
    message="User not registered in our system. Please sign in through the application first.",
)
INACTIVE_USER = Unauthenticated(
    code="INACTIVE_USER",
    error="Inactive user",
    message="User account is inactive",
)
DOMAIN_NOT_ALLOWED = Unauthenticated(
    code="DOMAIN_NOT_ALLOWED",
    error="Access denied",
    message="Your email domain is not authorized to use this application",
)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from ``Bearer <token>``, or None if malformed or absent."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class Authenticator:
    """Verifies request credentials and resolves the local user."""

    def __init__(
        self,
        verifier: IdentityVerifier,
        reconciler: UserReconciler,
        auto_provision: bool = True,
    ):
        """
        Args:
            verifier: Checks bearer tokens with the identity provider
            reconciler: Maps verified identities to local users
            auto_provision: Create unknown users on their first verified
                request; when False, only pre-registered users get in
        """
        self.verifier = verifier
        self.reconciler = reconciler
        self.auto_provision = auto_provision

    async def verify_identity(
        self,
        authorization: Optional[str],
        session: Optional[SessionPayload] = None,
    ) -> Union[ProviderProfile, Unauthenticated]:
        """
        Verify credentials with the identity provider only.

        The ``Authorization`` header wins; without one, the access token of
        the browser session is used.
        """
        if authorization is not None:
            token = extract_bearer_token(authorization)
            if token is None:
                return AUTH_REQUIRED
        elif session is not None:
            if session.error:
                return SESSION_EXPIRED
            token = session.access_token
        else:
            return AUTH_REQUIRED

        identity = await self.verifier.verify(token)
        if identity is None:
            return INVALID_TOKEN
        return identity

    async def authenticate(
        self,
        authorization: Optional[str],
        session: Optional[SessionPayload] = None,
    ) -> AuthResult:
        """Verify credentials and resolve them to an active local user."""
        try:
            identity = await self.verify_identity(authorization, session)
            if isinstance(identity, Unauthenticated):
                return identity

            if self.auto_provision:
                user = await self.reconciler.reconcile(identity)
            else:
                user = await self.reconciler.find_existing(identity)
        except DomainNotAllowedError:
            return DOMAIN_NOT_ALLOWED
        except ReconciliationError as e:
            logger.error(f"Database validation error: {e.message}")
            return AuthFailure("Failed to verify database user")
        except Exception:
            logger.exception("Authentication error")
            return AuthFailure("Failed to verify authentication")

        if user is None:
            return USER_NOT_FOUND
        if not user.is_active:
            logger.warning(f"Inactive user {user.id} attempted to authenticate")
            return INACTIVE_USER

        return Authenticated(user=user, identity=identity)
