"""
User management endpoints.
"""
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from apkdepot.core.access_control import Principal, check_password_change_access, check_user_read_access
from apkdepot.core.auth import require_role
from apkdepot.core.config import Settings, get_settings
from apkdepot.core.database import get_db
from apkdepot.core.errors import DomainError, ErrorKind
from apkdepot.core.roles import ApiKeyRole, UserRole, parse_user_role
from apkdepot.schemas.common import PagedResponse
from apkdepot.schemas.user import (
    ActiveStatusUpdateRequest,
    PasswordUpdateRequest,
    UserCreateRequest,
    UserResponse,
)
from apkdepot.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_role_or_raise(value: str) -> UserRole:
    role = parse_user_role(value)
    if role is None:
        raise DomainError(ErrorKind.INVALID_ROLE, f"Invalid role: {value}. Must be one of ADMIN, CI, CONSUMER")
    return role


@router.get("", response_model=PagedResponse[UserResponse])
def list_users(
    role: Optional[str] = Query(None, description="Filter by role"),
    is_active: Optional[bool] = Query(None, description="Filter by active status"),
    page: int = Query(0, ge=0, description="Page number (0-indexed)"),
    size: int = Query(20, ge=1, le=100, description="Page size"),
    _principal: Principal = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    """List users with optional filters (admin only)."""
    role_filter = _parse_role_or_raise(role) if role is not None else None
    users, total = UserService(db).list_users(role=role_filter, is_active=is_active, page=page, size=size)
    return PagedResponse[UserResponse](
        items=[UserResponse.from_user(user) for user in users],
        total=total,
        page=page,
        size=size,
    )


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    request: UserCreateRequest,
    principal: Principal = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    """
    Create an ADMIN or CI user (admin only).

    CONSUMER access is granted through application API keys instead.
    """
    role = _parse_role_or_raise(request.role)
    try:
        user = UserService(db).create_user(login=request.login, password=request.password, role=role)
    except DomainError:
        raise
    except Exception as e:
        logger.error(f"Error creating user: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user"
        )
    logger.info(f"{principal.name} created user {user.login}")
    return UserResponse.from_user(user)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: uuid.UUID,
    principal: Principal = Depends(
        require_role(UserRole.ADMIN, UserRole.CI, UserRole.CONSUMER, ApiKeyRole.CI, ApiKeyRole.CONSUMER)
    ),
    db: Session = Depends(get_db),
):
    """
    Get a user by id.

    Admins can read any user, everyone else only themselves.
    """
    check_user_read_access(principal, user_id)
    return UserResponse.from_user(UserService(db).get_user(user_id))


@router.put("/{user_id}/password", response_model=UserResponse)
def update_password(
    user_id: uuid.UUID,
    request: PasswordUpdateRequest,
    principal: Principal = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Change an ADMIN user's password.

    Admins change their own password; the super admin can change anyone's.
    Every token issued to the user before the change stops working.
    """
    users = UserService(db)
    super_admin = users.find_by_login(settings.SUPER_ADMIN_LOGIN)
    check_password_change_access(principal, user_id, super_admin.id if super_admin else None)

    user = users.update_password(user_id, request.new_password)
    return UserResponse.from_user(user)


@router.put("/{user_id}/activate", response_model=UserResponse)
def update_active_status(
    user_id: uuid.UUID,
    request: ActiveStatusUpdateRequest,
    principal: Principal = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Activate or deactivate a user (admin only).

    The super admin cannot be changed by anyone and admins cannot change
    themselves.
    """
    user = UserService(db).update_active_status(
        user_id,
        request.set_active,
        actor_id=principal.user_id,
        super_admin_login=settings.SUPER_ADMIN_LOGIN,
    )
    return UserResponse.from_user(user)
