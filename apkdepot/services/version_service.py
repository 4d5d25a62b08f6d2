"""
Service for application versions.

An upload is parsed by the metadata extractor, checked against the
application's pinned signing certificate and existing version codes, written
to APK storage and then recorded. The first accepted upload pins the
certificate.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from apkdepot.core.errors import DomainError, ErrorKind
from apkdepot.models.application import Application
from apkdepot.models.application_version import ApplicationVersion
from apkdepot.services.apk_metadata import ApkMetadataExtractor
from apkdepot.services.apk_storage import ApkStorage
from apkdepot.services.application_service import ApplicationService

logger = logging.getLogger(__name__)


class VersionService:
    """Upload, list, inspect, download and retire application versions."""

    def __init__(self, db: Session, storage: ApkStorage, extractor: Optional[ApkMetadataExtractor] = None):
        self.db = db
        self.storage = storage
        self.extractor = extractor
        self.applications = ApplicationService(db, storage)

    def upload_version(self, application_id: uuid.UUID, content: bytes) -> ApplicationVersion:
        """
        Register a new version from raw APK bytes.

        Check order: application exists, APK parses, certificate matches the
        pinned one (or pins it), version code is new and greater than every
        existing one. New versions start unstable.

        Raises:
            DomainError: APPLICATION_NOT_FOUND, INVALID_ARGUMENT, INVALID_APK,
                SIGNING_CERTIFICATE_MISMATCH, APPLICATION_VERSION_ALREADY_EXISTS,
                INVALID_VERSION_CODE, APK_STORAGE_FAILURE
        """
        application = self.applications.get_application(application_id)
        if not content:
            raise DomainError(ErrorKind.INVALID_ARGUMENT, "APK file is required")

        metadata = self.extractor.extract(content)
        logger.debug(
            f"APK metadata for application {application_id}: versionCode={metadata.version_code}, "
            f"versionName={metadata.version_name}, certSha256={metadata.signing_certificate_sha256}"
        )

        pinned = application.signing_certificate_sha256
        if pinned is not None and pinned != metadata.signing_certificate_sha256:
            logger.warning(
                f"Signing certificate mismatch for application {application_id}: "
                f"expected {pinned}, got {metadata.signing_certificate_sha256}"
            )
            raise DomainError(
                ErrorKind.SIGNING_CERTIFICATE_MISMATCH,
                f"APK signing certificate {metadata.signing_certificate_sha256} does not match "
                f"the application's certificate {pinned}",
            )

        if self._find_version(application_id, metadata.version_code) is not None:
            logger.warning(f"Version code {metadata.version_code} already exists for application {application_id}")
            raise DomainError(
                ErrorKind.APPLICATION_VERSION_ALREADY_EXISTS,
                f"Version {metadata.version_code} already exists for application {application_id}",
            )

        max_version_code = self._max_version_code(application_id)
        if max_version_code is not None and metadata.version_code <= max_version_code:
            logger.warning(
                f"Version code {metadata.version_code} is not greater than {max_version_code} "
                f"for application {application_id}"
            )
            raise DomainError(
                ErrorKind.INVALID_VERSION_CODE,
                f"Version code {metadata.version_code} must be greater than {max_version_code}",
            )

        # File first, so a stored row always has its APK
        self.storage.save(application_id, metadata.version_code, content)

        if pinned is None:
            logger.info(
                f"Pinning signing certificate for application {application_id}: "
                f"{metadata.signing_certificate_sha256}"
            )
            application.signing_certificate_sha256 = metadata.signing_certificate_sha256

        version = ApplicationVersion(
            id=uuid.uuid4(),
            application_id=application_id,
            version_code=metadata.version_code,
            version_name=metadata.version_name,
            stable=False,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(version)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(
                f"Failed to record version {metadata.version_code} for application {application_id}, "
                f"removing stored APK"
            )
            self._discard_apk(application_id, metadata.version_code)
            raise
        self.db.refresh(version)

        logger.info(
            f"Version uploaded: application={application_id}, versionCode={version.version_code}, "
            f"versionName={version.version_name}"
        )
        return version

    def list_versions(
        self, application_id: uuid.UUID, page: int = 0, size: int = 20
    ) -> Tuple[List[ApplicationVersion], int]:
        """Versions of an application, newest first."""
        self.applications.get_application(application_id)
        query = self.db.query(ApplicationVersion).filter(ApplicationVersion.application_id == application_id)
        total = query.count()
        items = (
            query.order_by(ApplicationVersion.created_at.desc(), ApplicationVersion.version_code.desc())
            .offset(page * size)
            .limit(size)
            .all()
        )
        return items, total

    def get_version(self, application_id: uuid.UUID, version_code: int) -> ApplicationVersion:
        self.applications.get_application(application_id)
        version = self._find_version(application_id, version_code)
        if version is None:
            raise DomainError(
                ErrorKind.APPLICATION_VERSION_NOT_FOUND,
                f"Version {version_code} not found for application {application_id}",
            )
        return version

    def get_latest_version(self, application_id: uuid.UUID) -> ApplicationVersion:
        """The stable version with the highest version code."""
        self.applications.get_application(application_id)
        version = (
            self.db.query(ApplicationVersion)
            .filter(ApplicationVersion.application_id == application_id, ApplicationVersion.stable.is_(True))
            .order_by(ApplicationVersion.version_code.desc())
            .first()
        )
        if version is None:
            raise DomainError(
                ErrorKind.APPLICATION_VERSION_NOT_FOUND,
                f"No stable version found for application {application_id}",
            )
        return version

    def load_apk(self, application_id: uuid.UUID, version_code: int) -> Tuple[Application, bytes]:
        """Application and APK bytes for a recorded version."""
        version = self.get_version(application_id, version_code)
        return version.application, self.storage.load(application_id, version.version_code)

    def update_stability(self, application_id: uuid.UUID, version_code: int, stable: bool) -> ApplicationVersion:
        version = self.get_version(application_id, version_code)
        version.stable = stable
        self.db.commit()
        self.db.refresh(version)
        logger.info(f"Version stability updated: application={application_id}, versionCode={version_code}, stable={stable}")
        return version

    def delete_version(self, application_id: uuid.UUID, version_code: int) -> None:
        """Delete the version record; the APK is removed on a best-effort basis."""
        version = self.get_version(application_id, version_code)
        self._discard_apk(application_id, version_code)
        self.db.delete(version)
        self.db.commit()
        logger.info(f"Version deleted: application={application_id}, versionCode={version_code}")

    def _find_version(self, application_id: uuid.UUID, version_code: int):
        return (
            self.db.query(ApplicationVersion)
            .filter(
                ApplicationVersion.application_id == application_id,
                ApplicationVersion.version_code == version_code,
            )
            .first()
        )

    def _max_version_code(self, application_id: uuid.UUID):
        return (
            self.db.query(func.max(ApplicationVersion.version_code))
            .filter(ApplicationVersion.application_id == application_id)
            .scalar()
        )

    def _discard_apk(self, application_id: uuid.UUID, version_code: int) -> None:
        try:
            self.storage.delete(application_id, version_code)
        except DomainError as e:
            logger.error(
                f"Could not delete APK for application {application_id}, version {version_code}: {e.message}. "
                f"Manual cleanup may be required."
            )
