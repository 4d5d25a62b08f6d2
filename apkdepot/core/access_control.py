"""
Authorization decisions.

Pure checks evaluated against an authenticated principal before a domain
operation runs. Each raises DomainError on denial and returns None otherwise.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

from apkdepot.core.errors import DomainError, ErrorKind
from apkdepot.core.roles import UserRole

logger = logging.getLogger(__name__)

PRINCIPAL_USER = "user"
PRINCIPAL_API_KEY = "api_key"


@dataclass(frozen=True)
class Principal:
    """Authenticated identity: a user (id + role) or an application API key (application id + role)."""
    kind: str
    role: str
    user_id: Optional[uuid.UUID] = None
    application_id: Optional[uuid.UUID] = None

    @property
    def is_user(self) -> bool:
        return self.kind == PRINCIPAL_USER

    @property
    def is_admin(self) -> bool:
        return self.is_user and self.role == UserRole.ADMIN.value

    @property
    def name(self) -> str:
        if self.is_user:
            return f"user:{self.user_id}"
        return f"apikey:{self.application_id}"


def _role_value(role) -> str:
    return getattr(role, "value", role)


def check_role(principal: Principal, allowed_roles: Iterable) -> None:
    """The principal's role must be one of the endpoint's allowed roles."""
    allowed = {_role_value(role) for role in allowed_roles}
    if principal.role not in allowed:
        logger.warning(
            f"Access denied: {principal.name} has role '{principal.role}', required one of {sorted(allowed)}"
        )
        raise DomainError(ErrorKind.FORBIDDEN_ACCESS, "Insufficient permissions")


def check_active_status_change(actor_id: Optional[uuid.UUID], target, super_admin_login: str) -> None:
    """
    Guard active-status changes.

    The super admin is protected from everyone, itself included, and this is
    checked first. Then nobody may change their own status.
    """
    if target.login.lower() == super_admin_login.lower():
        logger.warning(f"Attempt by {actor_id} to change super admin active status")
        raise DomainError(ErrorKind.SUPER_ADMIN_PROTECTION)
    if actor_id is not None and actor_id == target.id:
        logger.warning(f"User {actor_id} attempted to change their own active status")
        raise DomainError(ErrorKind.SELF_MODIFICATION_NOT_ALLOWED)


def check_own_resource(principal: Principal, user_id: uuid.UUID, message: str) -> None:
    """The principal must be the user it is acting on."""
    if not principal.is_user or principal.user_id != user_id:
        logger.warning(f"{principal.name} attempted to act on user {user_id} without permission")
        raise DomainError(ErrorKind.FORBIDDEN_ACCESS, message)


def check_user_read_access(principal: Principal, user_id: uuid.UUID) -> None:
    """ADMIN reads any user, everyone else only themselves."""
    if principal.is_admin:
        return
    check_own_resource(principal, user_id, "You can only access your own user data")


def check_password_change_access(
    principal: Principal, user_id: uuid.UUID, super_admin_id: Optional[uuid.UUID]
) -> None:
    """The super admin changes any password, other users only their own."""
    if super_admin_id is not None and principal.is_user and principal.user_id == super_admin_id:
        return
    check_own_resource(principal, user_id, "You can only update your own password")


def check_password_eligible(user) -> None:
    """Passwords exist only for ADMIN users."""
    if user.role != UserRole.ADMIN:
        logger.warning(
            f"Password operation rejected: user {user.id} has role {_role_value(user.role)}, only ADMIN users have passwords"
        )
        raise DomainError(
            ErrorKind.INVALID_USER_TYPE,
            f"Password operations are only available for ADMIN users (user role: {_role_value(user.role)})",
        )


def check_application_scope(principal: Principal, application_id: uuid.UUID) -> None:
    """API key principals act only on the application that issued their key."""
    if principal.is_user:
        return
    if principal.application_id != application_id:
        logger.warning(f"{principal.name} attempted to access application {application_id}")
        raise DomainError(ErrorKind.FORBIDDEN_ACCESS, "API key is not valid for this application")
