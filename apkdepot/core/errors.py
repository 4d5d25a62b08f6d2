"""
Domain error taxonomy.

Every business failure is a DomainError carrying one ErrorKind. The HTTP layer
turns kinds into status codes through ERROR_STATUS_CODES, which must cover the
whole enumeration.
"""
from enum import Enum
from typing import Dict, Optional

from fastapi import status


class ErrorKind(str, Enum):
    """Closed set of business failure kinds."""
    # Authentication
    INVALID_CREDENTIALS = "invalid_credentials"
    UNAUTHORIZED_ACCESS = "unauthorized_access"
    USER_NOT_ACTIVE = "user_not_active"
    INVALID_REFRESH_TOKEN = "invalid_refresh_token"
    INVALID_API_KEY = "invalid_api_key"
    API_KEY_REVOKED = "api_key_revoked"
    API_KEY_EXPIRED = "api_key_expired"
    NOT_AUTHENTICATED = "not_authenticated"

    # Authorization
    FORBIDDEN_ACCESS = "forbidden_access"
    SELF_MODIFICATION_NOT_ALLOWED = "self_modification_not_allowed"
    SUPER_ADMIN_PROTECTION = "super_admin_protection"

    # Domain rules
    INVALID_USER_TYPE = "invalid_user_type"
    INVALID_ROLE = "invalid_role"
    INVALID_API_KEY_ROLE = "invalid_api_key_role"
    INVALID_LOGIN_FORMAT = "invalid_login_format"
    INVALID_PASSWORD = "invalid_password"
    LOGIN_ALREADY_EXISTS = "login_already_exists"
    BUNDLE_ID_ALREADY_EXISTS = "bundle_id_already_exists"
    INVALID_APK = "invalid_apk"
    SIGNING_CERTIFICATE_MISMATCH = "signing_certificate_mismatch"
    INVALID_VERSION_CODE = "invalid_version_code"
    APPLICATION_VERSION_ALREADY_EXISTS = "application_version_already_exists"
    INVALID_ARGUMENT = "invalid_argument"

    # Missing entities
    USER_NOT_FOUND = "user_not_found"
    APPLICATION_NOT_FOUND = "application_not_found"
    API_KEY_NOT_FOUND = "api_key_not_found"
    APPLICATION_VERSION_NOT_FOUND = "application_version_not_found"
    APK_NOT_FOUND = "apk_not_found"

    # Infrastructure
    APK_STORAGE_FAILURE = "apk_storage_failure"


DEFAULT_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.INVALID_CREDENTIALS: "Invalid login or password",
    ErrorKind.UNAUTHORIZED_ACCESS: "Only ADMIN users can log in with username and password",
    ErrorKind.USER_NOT_ACTIVE: "User account is not active",
    ErrorKind.INVALID_REFRESH_TOKEN: "Invalid or expired refresh token",
    ErrorKind.INVALID_API_KEY: "API key not found or invalid",
    ErrorKind.API_KEY_REVOKED: "API key has been revoked",
    ErrorKind.API_KEY_EXPIRED: "API key has expired",
    ErrorKind.NOT_AUTHENTICATED: "Authentication required",
    ErrorKind.FORBIDDEN_ACCESS: "Access denied",
    ErrorKind.SELF_MODIFICATION_NOT_ALLOWED: "You cannot change your own active status",
    ErrorKind.SUPER_ADMIN_PROTECTION: "The super admin active status cannot be changed",
    ErrorKind.INVALID_USER_TYPE: "Operation is not allowed for this user type",
    ErrorKind.INVALID_ROLE: "Invalid role",
    ErrorKind.INVALID_API_KEY_ROLE: "Invalid API key role. Must be CI or CONSUMER",
    ErrorKind.INVALID_LOGIN_FORMAT: "Login must be 3-20 characters: letters, digits, underscore or dash",
    ErrorKind.INVALID_PASSWORD: (
        "Password must be at least 10 characters and contain a lowercase letter, "
        "an uppercase letter and a digit"
    ),
    ErrorKind.LOGIN_ALREADY_EXISTS: "User with this login already exists",
    ErrorKind.BUNDLE_ID_ALREADY_EXISTS: "Application with this bundle id already exists",
    ErrorKind.INVALID_APK: "APK file could not be parsed",
    ErrorKind.SIGNING_CERTIFICATE_MISMATCH: "APK is signed with a different certificate than earlier versions",
    ErrorKind.INVALID_VERSION_CODE: "Version code must be greater than every existing version code",
    ErrorKind.APPLICATION_VERSION_ALREADY_EXISTS: "Version with this version code already exists",
    ErrorKind.INVALID_ARGUMENT: "Invalid argument",
    ErrorKind.USER_NOT_FOUND: "User not found",
    ErrorKind.APPLICATION_NOT_FOUND: "Application not found",
    ErrorKind.API_KEY_NOT_FOUND: "API key not found",
    ErrorKind.APPLICATION_VERSION_NOT_FOUND: "Application version not found",
    ErrorKind.APK_NOT_FOUND: "APK file not found",
    ErrorKind.APK_STORAGE_FAILURE: "APK storage operation failed",
}

ERROR_STATUS_CODES: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.UNAUTHORIZED_ACCESS: status.HTTP_403_FORBIDDEN,
    ErrorKind.USER_NOT_ACTIVE: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_REFRESH_TOKEN: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_API_KEY: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.API_KEY_REVOKED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.API_KEY_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.NOT_AUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN_ACCESS: status.HTTP_403_FORBIDDEN,
    ErrorKind.SELF_MODIFICATION_NOT_ALLOWED: status.HTTP_403_FORBIDDEN,
    ErrorKind.SUPER_ADMIN_PROTECTION: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_USER_TYPE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_ROLE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_API_KEY_ROLE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_LOGIN_FORMAT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_PASSWORD: status.HTTP_400_BAD_REQUEST,
    ErrorKind.LOGIN_ALREADY_EXISTS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.BUNDLE_ID_ALREADY_EXISTS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_APK: status.HTTP_400_BAD_REQUEST,
    ErrorKind.SIGNING_CERTIFICATE_MISMATCH: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_VERSION_CODE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.APPLICATION_VERSION_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.APPLICATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.API_KEY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.APPLICATION_VERSION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.APK_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.APK_STORAGE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_unmapped = [kind.name for kind in ErrorKind if kind not in ERROR_STATUS_CODES or kind not in DEFAULT_MESSAGES]
if _unmapped:
    raise RuntimeError(f"Error kinds without status code or message: {', '.join(_unmapped)}")


class DomainError(Exception):
    """A typed, non-retryable business failure."""

    def __init__(self, kind: ErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_CODES[self.kind]

    def __repr__(self) -> str:
        return f"DomainError({self.kind.name}, {self.message!r})"
