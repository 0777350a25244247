"""Pydantic schemas for browser sessions and token refresh."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Error marker set on a session whose access token could not be refreshed
REFRESH_ERROR = "RefreshAccessTokenError"


class SessionUser(BaseModel):
    """User snapshot embedded in a session."""

    id: int
    name: Optional[str] = None
    email: str
    avatar: Optional[str] = None


class SessionPayload(BaseModel):
    """Internal session contents. Never returned to clients as-is."""

    access_token: str
    refresh_token: Optional[str] = None
    access_token_expires: int = Field(..., description="Access token expiry, epoch milliseconds")
    user: SessionUser
    error: Optional[str] = None


class SessionView(BaseModel):
    """Client-visible subset of a session."""

    user: SessionUser
    access_token: str
    access_token_expires: int
    error: Optional[str] = None


class TokenRefreshRequest(BaseModel):
    """Schema for refreshing a provider access token."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(..., min_length=1, alias="refreshToken")


class TokenRefreshResponse(BaseModel):
    """Schema for a refreshed provider access token, serialized in camelCase."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken")
    access_token_expires: int = Field(..., alias="accessTokenExpires", description="Epoch milliseconds")
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
