"""Application version database model."""
import uuid

from sqlalchemy import Column, String, Boolean, BigInteger, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from apkdepot.core.database import Base


class ApplicationVersion(Base):
    """
    One uploaded build of an application.

    The APK itself lives in APK storage under (application_id, version_code).
    """
    __tablename__ = "application_versions"
    __table_args__ = (
        UniqueConstraint("application_id", "version_code", name="uq_application_versions_application_code"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id = Column(
        Uuid, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version_code = Column(BigInteger, nullable=False)
    version_name = Column(String(255), nullable=True)
    stable = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    application = relationship("Application", back_populates="versions")
