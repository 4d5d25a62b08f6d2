"""API key database model."""
import uuid

from sqlalchemy import Column, String, Boolean, BigInteger, Integer, Enum, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from apkdepot.core.database import Base
from apkdepot.core.roles import ApiKeyRole


class ApiKey(Base):
    """
    Application-scoped API key.

    Only the SHA-256 digest of the secret is stored. Timestamps are epoch
    milliseconds.
    """
    __tablename__ = "api_keys"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    value_hash = Column(String(64), unique=True, nullable=False, index=True)
    role = Column(Enum(ApiKeyRole, name="api_key_role"), nullable=False)
    application_id = Column(
        Uuid, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(BigInteger, nullable=False)
    last_used_at = Column(BigInteger, nullable=True)
    expires_at = Column(BigInteger, nullable=True)  # absolute, never changed after creation
    token_version = Column(Integer, default=0, nullable=False)  # reserved, always 0

    application = relationship("Application", back_populates="api_keys")
