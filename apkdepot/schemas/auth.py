"""Schemas for authentication endpoints."""
import uuid
from typing import Optional

from pydantic import BaseModel, Field

from apkdepot.core.tokens import TokenPair


class LoginRequest(BaseModel):
    """Request schema for username/password login."""
    login: str = Field(..., description="User login (username)")
    password: str = Field(..., description="User password")


class RefreshTokenRequest(BaseModel):
    """Request schema for exchanging a refresh token."""
    refresh_token: str = Field(..., description="Refresh token received from the login endpoint")


class ApiKeyLoginRequest(BaseModel):
    """Request schema for exchanging an application API key."""
    api_key: str = Field(..., description="Application API key")


class TokenPairResponse(BaseModel):
    """Access and refresh token with their expiry as Unix timestamps (seconds)."""
    access_token: str
    access_token_expires_at: int
    refresh_token: str
    refresh_token_expires_at: int
    token_type: str = "bearer"

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenPairResponse":
        return cls(
            access_token=pair.access_token,
            access_token_expires_at=int(pair.access_token_expires_at.timestamp()),
            refresh_token=pair.refresh_token,
            refresh_token_expires_at=int(pair.refresh_token_expires_at.timestamp()),
        )


class ApiTokenResponse(BaseModel):
    """Access token issued for an API key."""
    access_token: str
    access_token_expires_at: int
    token_type: str = "bearer"


class MeResponse(BaseModel):
    """The authenticated principal."""
    principal_type: str
    role: str
    is_admin: bool
    user_id: Optional[uuid.UUID] = None
    application_id: Optional[uuid.UUID] = None
