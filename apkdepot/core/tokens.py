"""
JWT issuance and validation.

Three token shapes share one signing key and issuer:

- user access token:   sub="user:<id>",   tokenType="access",  tokenVersion=<n>
- user refresh token:  sub="user:<id>",   tokenType="refresh", tokenVersion=<n>
- API key access token: sub="apikey:<application id>", tokenType="access", applicationId=<id>

validate() collapses every failure (bad signature, wrong or missing issuer,
expiry, garbage input) into None. Claim accessors never raise either; a claim
that is missing or has the wrong shape reads as None.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import jwt

from apkdepot.core.config import JwtSettings

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"

USER_SUBJECT_PREFIX = "user:"
API_KEY_SUBJECT_PREFIX = "apikey:"

CLAIM_ROLE = "role"
CLAIM_TOKEN_TYPE = "tokenType"
CLAIM_TOKEN_VERSION = "tokenVersion"
CLAIM_APPLICATION_ID = "applicationId"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    access_token_expires_at: datetime
    refresh_token: str
    refresh_token_expires_at: datetime


class TokenEngine:
    """Signs and verifies tokens with a fixed key and issuer."""

    def __init__(self, jwt_settings: JwtSettings):
        if jwt_settings.refresh_token_validity_seconds <= jwt_settings.access_token_validity_seconds:
            raise ValueError("Refresh token validity must be greater than access token validity")
        self._secret = jwt_settings.secret
        self._issuer = jwt_settings.issuer
        self._access_ttl = timedelta(seconds=jwt_settings.access_token_validity_seconds)
        self._refresh_ttl = timedelta(seconds=jwt_settings.refresh_token_validity_seconds)

    @property
    def issuer(self) -> str:
        return self._issuer

    def issue_access_token(self, user_id: uuid.UUID, role: str, token_version: int) -> Tuple[str, datetime]:
        return self._issue(
            subject=f"{USER_SUBJECT_PREFIX}{user_id}",
            ttl=self._access_ttl,
            claims={
                CLAIM_ROLE: _role_name(role),
                CLAIM_TOKEN_TYPE: TOKEN_TYPE_ACCESS,
                CLAIM_TOKEN_VERSION: token_version,
            },
        )

    def issue_refresh_token(self, user_id: uuid.UUID, role: str, token_version: int) -> Tuple[str, datetime]:
        return self._issue(
            subject=f"{USER_SUBJECT_PREFIX}{user_id}",
            ttl=self._refresh_ttl,
            claims={
                CLAIM_ROLE: _role_name(role),
                CLAIM_TOKEN_TYPE: TOKEN_TYPE_REFRESH,
                CLAIM_TOKEN_VERSION: token_version,
            },
        )

    def issue_token_pair(self, user_id: uuid.UUID, role: str, token_version: int) -> TokenPair:
        """Access and refresh token for the same user, bound to the same token version."""
        logger.debug(f"Generating token pair for user: {user_id}")
        access_token, access_expires_at = self.issue_access_token(user_id, role, token_version)
        refresh_token, refresh_expires_at = self.issue_refresh_token(user_id, role, token_version)
        return TokenPair(
            access_token=access_token,
            access_token_expires_at=access_expires_at,
            refresh_token=refresh_token,
            refresh_token_expires_at=refresh_expires_at,
        )

    def issue_api_key_access_token(self, application_id: uuid.UUID, role: str) -> Tuple[str, datetime]:
        """Access token for an API key principal. Carries no token version."""
        return self._issue(
            subject=f"{API_KEY_SUBJECT_PREFIX}{application_id}",
            ttl=self._access_ttl,
            claims={
                CLAIM_ROLE: _role_name(role),
                CLAIM_TOKEN_TYPE: TOKEN_TYPE_ACCESS,
                CLAIM_APPLICATION_ID: str(application_id),
            },
        )

    def validate(self, token: str) -> Optional[Dict[str, Any]]:
        """Return the claims of a well-signed, unexpired token from our issuer, else None."""
        if not token or not isinstance(token, str):
            return None
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                issuer=self._issuer,
                options={"require": ["exp", "iat", "iss", "sub"]},
            )
        except jwt.PyJWTError as e:
            logger.warning(f"Token validation failed: {type(e).__name__}")
            return None

    def _issue(self, subject: str, ttl: timedelta, claims: Dict[str, Any]) -> Tuple[str, datetime]:
        now = datetime.now(timezone.utc)
        expires_at = now + ttl
        payload = {
            "sub": subject,
            "iss": self._issuer,
            "iat": now,
            "exp": expires_at,
            "jti": uuid.uuid4().hex,
            **claims,
        }
        token = jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)
        # exp is serialized with whole-second precision
        return token, expires_at.replace(microsecond=0)


def _role_name(role: Any) -> str:
    return getattr(role, "value", role)


def get_subject(claims: Dict[str, Any]) -> Optional[str]:
    subject = claims.get("sub")
    return subject if isinstance(subject, str) else None


def extract_user_id(claims: Dict[str, Any]) -> Optional[uuid.UUID]:
    """User id from a "user:<uuid>" subject."""
    subject = get_subject(claims)
    if subject is None or not subject.startswith(USER_SUBJECT_PREFIX):
        return None
    try:
        return uuid.UUID(subject[len(USER_SUBJECT_PREFIX):])
    except ValueError:
        logger.warning("Failed to extract user ID from token subject")
        return None


def extract_application_id(claims: Dict[str, Any]) -> Optional[uuid.UUID]:
    """Application id from an "apikey:<uuid>" subject, falling back to the applicationId claim."""
    subject = get_subject(claims)
    if subject is not None and subject.startswith(API_KEY_SUBJECT_PREFIX):
        raw = subject[len(API_KEY_SUBJECT_PREFIX):]
    else:
        raw = claims.get(CLAIM_APPLICATION_ID)
    if not isinstance(raw, str):
        return None
    try:
        return uuid.UUID(raw)
    except ValueError:
        logger.warning("Failed to extract application ID from token")
        return None


def get_token_type(claims: Dict[str, Any]) -> Optional[str]:
    value = claims.get(CLAIM_TOKEN_TYPE)
    return value if isinstance(value, str) else None


def get_role(claims: Dict[str, Any]) -> Optional[str]:
    value = claims.get(CLAIM_ROLE)
    return value if isinstance(value, str) else None


def get_token_version(claims: Dict[str, Any]) -> Optional[int]:
    value = claims.get(CLAIM_TOKEN_VERSION)
    # bool is an int subclass; a boolean version is malformed
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value
