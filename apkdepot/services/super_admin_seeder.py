"""
Service for provisioning the super admin account.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from apkdepot.core.config import Settings
from apkdepot.core.roles import UserRole
from apkdepot.models.user import User
from apkdepot.services.user_service import UserService

logger = logging.getLogger(__name__)


def seed_super_admin(db: Session, settings: Settings) -> Optional[User]:
    """
    Create the super admin if its login does not exist yet.

    Safe to run on every start. Returns the created user, or None when nothing
    was created.
    """
    users = UserService(db)
    login = settings.SUPER_ADMIN_LOGIN

    if users.user_exists(login):
        logger.info(f"Super admin user already exists with login: {login}")
        return None

    if not settings.SUPER_ADMIN_PASSWORD:
        logger.error(f"Super admin '{login}' does not exist and SUPER_ADMIN_PASSWORD is not set. Skipping creation.")
        return None

    logger.info(f"Super admin user not found. Creating user with login: {login}")
    super_admin = users.create_user(login=login, password=settings.SUPER_ADMIN_PASSWORD, role=UserRole.ADMIN)
    logger.info(f"Super admin user created successfully with ID: {super_admin.id}")
    return super_admin


def ensure_super_admin(db: Session, settings: Settings) -> None:
    """Ensure the super admin is provisioned (called on startup)."""
    try:
        seed_super_admin(db, settings)
    except Exception as e:
        logger.error(f"Error provisioning super admin: {e}", exc_info=True)
        raise
