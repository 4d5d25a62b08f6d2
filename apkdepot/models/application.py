"""Application database model."""
import uuid

from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from apkdepot.core.database import Base


class Application(Base):
    """A distributable Android application."""
    __tablename__ = "applications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    bundle_id = Column(String(255), unique=True, nullable=False, index=True)
    signing_certificate_sha256 = Column(String(64), nullable=True)  # pinned by the first uploaded version
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    api_keys = relationship("ApiKey", back_populates="application", cascade="all, delete-orphan")
    versions = relationship("ApplicationVersion", back_populates="application", cascade="all, delete-orphan")
