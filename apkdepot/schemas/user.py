"""Schemas for user management."""
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserCreateRequest(BaseModel):
    """Request schema for creating a user."""
    login: str = Field(..., description="3-20 characters: letters, digits, underscore or dash")
    password: Optional[str] = Field(None, description="Required for ADMIN users, ignored for CI users")
    role: str = Field(..., description="ADMIN or CI")


class PasswordUpdateRequest(BaseModel):
    """Request schema for changing a password."""
    new_password: str = Field(
        ...,
        description="New password: at least 10 characters with a lowercase letter, an uppercase letter and a digit",
    )


class ActiveStatusUpdateRequest(BaseModel):
    """Request schema for activating or deactivating a user."""
    set_active: bool = Field(..., description="true to activate, false to deactivate")


class UserResponse(BaseModel):
    """Response schema for user (no credential material)."""
    id: uuid.UUID
    login: str
    role: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    last_login_at: Optional[datetime] = None
    last_interaction_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            login=user.login,
            role=user.role.value,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at,
            last_login_at=user.last_login_at,
            last_interaction_at=user.last_interaction_at,
        )
