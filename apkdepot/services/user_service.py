"""
Service for user account management.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from apkdepot.core.access_control import check_active_status_change, check_password_eligible
from apkdepot.core.errors import DomainError, ErrorKind
from apkdepot.core.roles import UserRole
from apkdepot.core.security import hash_password
from apkdepot.models.user import User
from apkdepot.utils.credentials import is_login_valid, is_password_valid

logger = logging.getLogger(__name__)


class UserService:
    """User creation, lookup, password and active-status changes."""

    def __init__(self, db: Session):
        self.db = db

    def create_user(self, login: str, password: Optional[str], role: UserRole) -> User:
        """
        Create a user.

        CONSUMER users cannot be created here. ADMIN users need a password
        meeting the strength policy; CI users never store one.

        Raises:
            DomainError: INVALID_ROLE, INVALID_LOGIN_FORMAT, LOGIN_ALREADY_EXISTS, INVALID_PASSWORD
        """
        logger.debug(f"Attempting to create user with login: {login}, role: {role}")

        if role == UserRole.CONSUMER:
            logger.warning("Failed to create user: CONSUMER role not allowed")
            raise DomainError(
                ErrorKind.INVALID_ROLE,
                "CONSUMER role cannot be created via this endpoint. CONSUMER access is granted with application API keys.",
            )

        if not is_login_valid(login):
            logger.warning(f"Failed to create user: invalid login format: {login!r}")
            raise DomainError(ErrorKind.INVALID_LOGIN_FORMAT)

        if self.exists_by_login_ignore_case(login):
            logger.warning(f"Failed to create user: login '{login}' already exists (case-insensitive check)")
            raise DomainError(ErrorKind.LOGIN_ALREADY_EXISTS, f"User with login '{login}' already exists")

        password_hash = None
        if role == UserRole.ADMIN:
            if not is_password_valid(password):
                logger.warning("Failed to create user: password doesn't meet security requirements")
                raise DomainError(ErrorKind.INVALID_PASSWORD)
            password_hash = hash_password(password)
        elif password:
            logger.info(f"Ignoring password supplied for {role.value} user '{login}'")

        now = datetime.now(timezone.utc)
        user = User(
            id=uuid.uuid4(),
            login=login,
            password_hash=password_hash,
            role=role,
            is_active=True,
            created_at=now,
            updated_at=now,
            last_login_at=None,
            last_interaction_at=None,
            token_version=0,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User created successfully: login={user.login}, id={user.id}, role={user.role.value}")
        return user

    def find_by_login(self, login: str) -> Optional[User]:
        """Exact-match lookup."""
        return self.db.query(User).filter(User.login == login).first()

    def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user(self, user_id: uuid.UUID) -> User:
        user = self.find_by_id(user_id)
        if user is None:
            raise DomainError(ErrorKind.USER_NOT_FOUND, f"User with id '{user_id}' not found")
        return user

    def user_exists(self, login: str) -> bool:
        return self.db.query(User.id).filter(User.login == login).first() is not None

    def exists_by_login_ignore_case(self, login: str) -> bool:
        return (
            self.db.query(User.id).filter(func.lower(User.login) == login.lower()).first()
            is not None
        )

    def list_users(
        self,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        page: int = 0,
        size: int = 20,
    ) -> Tuple[List[User], int]:
        """Filtered page of users ordered by creation time, plus the total match count."""
        logger.debug(f"Finding users with filters: role={role}, is_active={is_active}, page={page}, size={size}")
        query = self.db.query(User)
        if role is not None:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)

        total = query.count()
        users = query.order_by(User.created_at.asc(), User.login.asc()).offset(page * size).limit(size).all()
        logger.info(f"Found {total} users matching filters")
        return users, total

    def update_password(self, user_id: uuid.UUID, new_password: str) -> User:
        """
        Replace an ADMIN user's password and invalidate every token issued so far.

        Raises:
            DomainError: USER_NOT_FOUND, INVALID_USER_TYPE, INVALID_PASSWORD
        """
        logger.debug(f"Attempting to update password for user: {user_id}")
        user = self.get_user(user_id)
        check_password_eligible(user)

        if not is_password_valid(new_password):
            logger.warning("Failed to update password: password doesn't meet security requirements")
            raise DomainError(ErrorKind.INVALID_PASSWORD)

        self._bump_token_version(user, password_hash=hash_password(new_password))
        logger.info(
            f"Password updated successfully for user: {user.id}, tokenVersion incremented to {user.token_version}"
        )
        return user

    def update_active_status(
        self,
        user_id: uuid.UUID,
        is_active: bool,
        actor_id: Optional[uuid.UUID],
        super_admin_login: str,
    ) -> User:
        """
        Activate or deactivate a user.

        The super admin can never be changed and nobody can change their own
        status. Re-applying the current status changes nothing.

        Raises:
            DomainError: USER_NOT_FOUND, SUPER_ADMIN_PROTECTION, SELF_MODIFICATION_NOT_ALLOWED
        """
        user = self.get_user(user_id)
        check_active_status_change(actor_id, user, super_admin_login)

        if user.is_active == is_active:
            logger.info(f"User {user.id} already has is_active={is_active}, nothing to change")
            return user

        self._bump_token_version(user, is_active=is_active)
        logger.info(
            f"User {user.id} is_active set to {is_active}, tokenVersion incremented to {user.token_version}"
        )
        return user

    def touch_last_interaction(self, user: User) -> None:
        user.last_interaction_at = datetime.now(timezone.utc)
        self.db.commit()

    def _bump_token_version(self, user: User, **changes) -> None:
        # Increment in SQL so concurrent updates cannot both write the same version
        values = {User.token_version: User.token_version + 1, User.updated_at: datetime.now(timezone.utc)}
        for field, value in changes.items():
            values[getattr(User, field)] = value
        self.db.query(User).filter(User.id == user.id).update(values, synchronize_session=False)
        self.db.commit()
        self.db.refresh(user)
