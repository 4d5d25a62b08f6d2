"""
Login, refresh and API key exchange flows.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from apkdepot.core.errors import DomainError, ErrorKind
from apkdepot.core.roles import UserRole
from apkdepot.core.security import verify_password
from apkdepot.core.tokens import (
    TOKEN_TYPE_REFRESH,
    TokenEngine,
    TokenPair,
    extract_user_id,
    get_role,
    get_token_type,
    get_token_version,
)
from apkdepot.services.api_key_service import ApiKeyService
from apkdepot.services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiKeyToken:
    access_token: str
    expires_at: datetime


class AuthService:
    """Turns credentials into tokens."""

    def __init__(self, db: Session, token_engine: TokenEngine):
        self.db = db
        self.token_engine = token_engine
        self.users = UserService(db)
        self.api_keys = ApiKeyService(db)

    def login(self, login: str, password: str) -> TokenPair:
        """
        Username/password login for ADMIN users.

        Check order: user exists, role is ADMIN, user is active, password
        matches. Unknown login and wrong password fail identically.

        Raises:
            DomainError: INVALID_CREDENTIALS, UNAUTHORIZED_ACCESS, USER_NOT_ACTIVE
        """
        logger.info(f"Login attempt for user: {login}")

        user = self.users.find_by_login(login)
        if user is None:
            logger.warning(f"Login failed: user not found with login: {login}")
            raise DomainError(ErrorKind.INVALID_CREDENTIALS)

        if user.role != UserRole.ADMIN:
            logger.warning(f"Login failed: user {user.login} is not an ADMIN (role: {user.role.value})")
            raise DomainError(ErrorKind.UNAUTHORIZED_ACCESS)

        if not user.is_active:
            logger.warning(f"Login failed: user {user.login} is not active")
            raise DomainError(ErrorKind.USER_NOT_ACTIVE)

        if user.password_hash is None or not verify_password(password, user.password_hash):
            logger.warning(f"Login failed: invalid password for user: {user.login}")
            raise DomainError(ErrorKind.INVALID_CREDENTIALS)

        now = datetime.now(timezone.utc)
        user.last_login_at = now
        user.updated_at = now
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User {user.login} logged in successfully")
        return self.token_engine.issue_token_pair(user.id, user.role.value, user.token_version)

    def refresh(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new token pair.

        Every rejection reason surfaces as INVALID_REFRESH_TOKEN.
        """
        logger.info("Refresh token request received")

        claims = self.token_engine.validate(refresh_token)
        if claims is None:
            logger.warning("Refresh token validation failed: invalid or expired token")
            raise DomainError(ErrorKind.INVALID_REFRESH_TOKEN)

        token_type = get_token_type(claims)
        if token_type != TOKEN_TYPE_REFRESH:
            logger.warning(f"Refresh token validation failed: token type is not 'refresh' (type: {token_type})")
            raise DomainError(ErrorKind.INVALID_REFRESH_TOKEN)

        role = get_role(claims)
        if role != UserRole.ADMIN.value:
            logger.warning(f"Refresh token validation failed: token role is not ADMIN (role: {role})")
            raise DomainError(ErrorKind.INVALID_REFRESH_TOKEN)

        user_id = extract_user_id(claims)
        if user_id is None:
            logger.warning("Refresh token validation failed: could not extract user ID from subject")
            raise DomainError(ErrorKind.INVALID_REFRESH_TOKEN)

        user = self.users.find_by_id(user_id)
        if user is None:
            logger.warning(f"Refresh token validation failed: user not found with ID: {user_id}")
            raise DomainError(ErrorKind.INVALID_REFRESH_TOKEN)

        if not user.is_active:
            logger.warning(f"Refresh token validation failed: user {user.login} is not active")
            raise DomainError(ErrorKind.INVALID_REFRESH_TOKEN)

        if user.role != UserRole.ADMIN:
            logger.warning(f"Refresh token validation failed: user {user.login} is not ADMIN")
            raise DomainError(ErrorKind.INVALID_REFRESH_TOKEN)

        token_version = get_token_version(claims)
        if token_version != user.token_version:
            logger.warning(
                f"Refresh token validation failed: token version mismatch "
                f"(token: {token_version}, user: {user.token_version})"
            )
            raise DomainError(ErrorKind.INVALID_REFRESH_TOKEN)

        logger.info(f"Refresh token validated successfully for user: {user.login}")
        return self.token_engine.issue_token_pair(user.id, user.role.value, user.token_version)

    def login_with_api_key(self, raw_secret: str) -> ApiKeyToken:
        """
        Exchange an API key for an application access token.

        Raises:
            DomainError: INVALID_API_KEY, API_KEY_REVOKED, API_KEY_EXPIRED
        """
        logger.info("API key authentication attempt")
        principal = self.api_keys.authenticate_api_key(raw_secret)
        token, expires_at = self.token_engine.issue_api_key_access_token(
            principal.application_id, principal.role.value
        )
        return ApiKeyToken(access_token=token, expires_at=expires_at)
