"""
Bearer token authentication and RBAC for protected endpoints.
"""
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from apkdepot.core.access_control import PRINCIPAL_API_KEY, PRINCIPAL_USER, Principal, check_role
from apkdepot.core.config import get_settings
from apkdepot.core.database import get_db
from apkdepot.core.errors import DomainError, ErrorKind
from apkdepot.core.roles import parse_api_key_role, parse_user_role
from apkdepot.core.tokens import (
    API_KEY_SUBJECT_PREFIX,
    TOKEN_TYPE_ACCESS,
    USER_SUBJECT_PREFIX,
    TokenEngine,
    extract_application_id,
    extract_user_id,
    get_role,
    get_subject,
    get_token_type,
    get_token_version,
)
from apkdepot.services.user_service import UserService

logger = logging.getLogger(__name__)

# Define the bearer scheme; missing credentials are reported as NOT_AUTHENTICATED below
bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_token_engine() -> TokenEngine:
    """Process-wide token engine built from the loaded settings."""
    return TokenEngine(get_settings().jwt_settings())


def _not_authenticated(reason: str) -> DomainError:
    logger.warning(f"Authentication failed: {reason}")
    return DomainError(ErrorKind.NOT_AUTHENTICATED)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: Session = Depends(get_db),
    token_engine: TokenEngine = Depends(get_token_engine),
) -> Principal:
    """
    Dependency resolving the bearer token into a Principal.

    Only access tokens are accepted. User tokens must belong to an existing,
    active user whose token version still matches; the user's last
    interaction is stamped on success. API key tokens resolve to their
    application.

    Raises:
        DomainError: NOT_AUTHENTICATED for any missing or unusable token
    """
    if credentials is None or not credentials.credentials:
        raise _not_authenticated("bearer token missing")

    claims = token_engine.validate(credentials.credentials)
    if claims is None:
        raise _not_authenticated("invalid or expired token")

    if get_token_type(claims) != TOKEN_TYPE_ACCESS:
        raise _not_authenticated("token is not an access token")

    subject = get_subject(claims) or ""

    if subject.startswith(USER_SUBJECT_PREFIX):
        user_id = extract_user_id(claims)
        role = parse_user_role(get_role(claims))
        if user_id is None or role is None:
            raise _not_authenticated("malformed user token")

        users = UserService(db)
        user = users.find_by_id(user_id)
        if user is None:
            raise _not_authenticated(f"user {user_id} no longer exists")
        if not user.is_active:
            raise _not_authenticated(f"user {user.login} is not active")
        if get_token_version(claims) != user.token_version:
            raise _not_authenticated(f"stale token version for user {user.login}")

        users.touch_last_interaction(user)
        logger.debug(f"Authenticated user {user.login} (role: {user.role.value})")
        return Principal(kind=PRINCIPAL_USER, role=user.role.value, user_id=user.id)

    if subject.startswith(API_KEY_SUBJECT_PREFIX):
        application_id = extract_application_id(claims)
        role = parse_api_key_role(get_role(claims))
        if application_id is None or role is None:
            raise _not_authenticated("malformed API key token")
        logger.debug(f"Authenticated API key for application {application_id} (role: {role.value})")
        return Principal(kind=PRINCIPAL_API_KEY, role=role.value, application_id=application_id)

    raise _not_authenticated("unrecognised token subject")


def require_role(*roles):
    """
    Dependency factory for role-based access control.

    Args:
        roles: Allowed roles (UserRole/ApiKeyRole members or their names)

    Returns:
        Dependency function that checks the principal's role
    """
    def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        check_role(principal, roles)
        return principal

    return role_checker
