"""
Role definitions.

Two closed enumerations:
- UserRole: roles held by user accounts (ADMIN, CI, CONSUMER)
- ApiKeyRole: roles an application API key can carry (CI, CONSUMER)

Only ADMIN users log in with a password. CI and CONSUMER principals normally
come from API keys exchanged for short-lived access tokens.
"""
from enum import Enum
from typing import Optional


class UserRole(str, Enum):
    """Roles held by user accounts."""
    ADMIN = "ADMIN"
    CI = "CI"
    CONSUMER = "CONSUMER"


class ApiKeyRole(str, Enum):
    """Roles an application API key can carry."""
    CI = "CI"
    CONSUMER = "CONSUMER"


def parse_user_role(value: Optional[str]) -> Optional[UserRole]:
    """Map an external string onto UserRole, case-insensitively. Returns None for anything else."""
    if not isinstance(value, str):
        return None
    try:
        return UserRole(value.strip().upper())
    except ValueError:
        return None


def parse_api_key_role(value: Optional[str]) -> Optional[ApiKeyRole]:
    """Map an external string onto ApiKeyRole, case-insensitively. Returns None for anything else."""
    if not isinstance(value, str):
        return None
    try:
        return ApiKeyRole(value.strip().upper())
    except ValueError:
        return None
