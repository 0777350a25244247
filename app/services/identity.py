"""
Google identity provider integration.

This module handles:
- Building the OAuth consent URL and exchanging authorization codes
- Refreshing provider access tokens
- Verifying bearer tokens against the userinfo endpoint
- Enforcing the organization email-domain allowlist
"""

import logging
import time
from typing import Any, Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from app.config import Settings, DEFAULT_ALLOWED_DOMAIN
from app.schemas.user import ProviderProfile
from app.services.exceptions import IdentityProviderError

logger = logging.getLogger(__name__)

OAUTH_SCOPE = "openid email profile"


def is_allowed_domain(email: Optional[str], allowed_domain: str = DEFAULT_ALLOWED_DOMAIN) -> bool:
    """
    Check whether an email belongs to the allowed organization domain.

    Args:
        email: Email address to check
        allowed_domain: Domain suffix, without the ``@``

    Returns:
        True if the email ends with ``@<allowed_domain>``
    """
    if not email or not allowed_domain:
        return False
    return email.strip().lower().endswith(f"@{allowed_domain.strip().lower()}")


class GoogleOAuthClient:
    """Thin async client for Google's OAuth 2.0 endpoints."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the OAuth client.

        Args:
            settings: Application settings with client credentials and endpoints
            transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
        """
        self.settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=self.settings.IDENTITY_PROVIDER_TIMEOUT,
        )

    def authorization_url(self, state: str) -> str:
        """Build the consent screen URL for the authorization code flow."""
        params = {
            "client_id": self.settings.GOOGLE_CLIENT_ID,
            "redirect_uri": self.settings.GOOGLE_REDIRECT_URI,
            "response_type": "code",
            "scope": OAUTH_SCOPE,
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{self.settings.GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> dict[str, Any]:
        """
        Exchange an authorization code for tokens.

        Returns:
            Token response with ``expires_at`` (epoch seconds) added

        Raises:
            IdentityProviderError: If the provider rejects the code or is unreachable
        """
        return await self._token_request({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.settings.GOOGLE_REDIRECT_URI,
        })

    async def refresh_access_token(self, refresh_token: str) -> dict[str, Any]:
        """
        Obtain a new access token using a refresh token.

        Raises:
            IdentityProviderError: If the refresh is rejected or the provider is unreachable
        """
        return await self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })

    async def fetch_userinfo(self, access_token: str) -> dict[str, Any]:
        """
        Fetch the profile associated with an access token.

        Raises:
            IdentityProviderError: On non-success status or network failure
        """
        try:
            async with self._client() as client:
                response = await client.get(
                    self.settings.GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            raise IdentityProviderError(f"Userinfo request failed: {e}") from e

        if not response.is_success:
            raise IdentityProviderError(
                f"Userinfo request rejected with status {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise IdentityProviderError("Userinfo response is not valid JSON") from e

    async def _token_request(self, payload: dict[str, str]) -> dict[str, Any]:
        payload = {
            **payload,
            "client_id": self.settings.GOOGLE_CLIENT_ID,
            "client_secret": self.settings.GOOGLE_CLIENT_SECRET,
        }
        try:
            async with self._client() as client:
                response = await client.post(
                    self.settings.GOOGLE_TOKEN_URL,
                    data=payload,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise IdentityProviderError(f"Token request failed: {e}") from e

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = {}
            error = body.get("error_description") or body.get("error") if isinstance(body, dict) else None
            raise IdentityProviderError(
                f"Token request rejected: {error or response.status_code}",
                status_code=response.status_code,
            )

        try:
            tokens = response.json()
        except ValueError as e:
            raise IdentityProviderError("Token response is not valid JSON") from e

        if not isinstance(tokens, dict) or not tokens.get("access_token"):
            raise IdentityProviderError("Token response missing access_token")

        try:
            if "expires_at" in tokens:
                tokens["expires_at"] = int(tokens["expires_at"])
            else:
                tokens["expires_at"] = int(time.time()) + int(tokens.get("expires_in", 3600))
        except (TypeError, ValueError) as e:
            raise IdentityProviderError("Token response has an invalid expiry") from e
        return tokens


class IdentityVerifier:
    """
    Exchanges a bearer token for a verified provider profile.

    Verification never raises: an invalid token, an unreachable provider,
    a malformed profile or a disallowed domain all yield ``None``.
    """

    def __init__(self, oauth_client: GoogleOAuthClient, allowed_domain: str = DEFAULT_ALLOWED_DOMAIN):
        self.oauth_client = oauth_client
        self.allowed_domain = allowed_domain

    async def verify(self, token: str) -> Optional[ProviderProfile]:
        """
        Verify a bearer token with the identity provider.

        Args:
            token: Provider access token

        Returns:
            ProviderProfile for an allowed identity, otherwise None
        """
        if not token:
            return None

        try:
            data = await self.oauth_client.fetch_userinfo(token)
        except IdentityProviderError as e:
            logger.warning(f"Token validation failed: {e.message}")
            return None

        try:
            profile = ProviderProfile.model_validate(data)
        except ValidationError:
            logger.warning("Identity provider returned an unusable profile")
            return None

        if not is_allowed_domain(profile.email, self.allowed_domain):
            logger.warning(f"Domain not allowed: {profile.email}")
            return None

        return profile
