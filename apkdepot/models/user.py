"""User database model."""
import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Integer, Enum, Uuid
from sqlalchemy.sql import func

from apkdepot.core.database import Base
from apkdepot.core.roles import UserRole


class User(Base):
    """Human operator or service account."""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    login = Column(String(20), unique=True, nullable=False, index=True)  # unique case-insensitively, enforced by UserService
    password_hash = Column(String(255), nullable=True)  # ADMIN only
    role = Column(Enum(UserRole, name="user_role"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    last_interaction_at = Column(DateTime(timezone=True), nullable=True)

    # Bumped on password and active-status changes; tokens carrying another value are rejected
    token_version = Column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} login={self.login} role={self.role}>"
