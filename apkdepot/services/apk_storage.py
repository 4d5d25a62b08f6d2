"""
APK file storage.

Files are addressed by (application id, version code). The service layer only
sees the ApkStorage interface; FileSystemApkStorage is the implementation
wired into the API.
"""
import logging
import os
import tempfile
import uuid
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path

from apkdepot.core.config import get_settings
from apkdepot.core.errors import DomainError, ErrorKind

logger = logging.getLogger(__name__)


def apk_relative_path(application_id: uuid.UUID, version_code: int) -> Path:
    return Path("app", str(application_id), "ver", str(version_code), "base.apk")


class ApkStorage(ABC):
    """Save, load and delete APK content."""

    @abstractmethod
    def save(self, application_id: uuid.UUID, version_code: int, content: bytes) -> None:
        """Store content, replacing any file already stored for the same version."""

    @abstractmethod
    def load(self, application_id: uuid.UUID, version_code: int) -> bytes:
        """Return stored content. Raises DomainError(APK_NOT_FOUND) when nothing is stored."""

    @abstractmethod
    def delete(self, application_id: uuid.UUID, version_code: int) -> None:
        """Remove stored content. Deleting a missing file is not an error."""


class FileSystemApkStorage(ApkStorage):
    """Keeps APKs below a root directory as app/<id>/ver/<code>/base.apk."""

    def __init__(self, root):
        self.root = Path(root)

    def path_for(self, application_id: uuid.UUID, version_code: int) -> Path:
        return self.root / apk_relative_path(application_id, version_code)

    def save(self, application_id: uuid.UUID, version_code: int, content: bytes) -> None:
        target = self.path_for(application_id, version_code)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            # Write next to the target and rename so readers never see a partial file
            fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix="upload-", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as tmp_file:
                    tmp_file.write(content)
                os.replace(tmp_name, target)
            except Exception:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"Failed to save APK to {target}: {e}", exc_info=True)
            raise DomainError(ErrorKind.APK_STORAGE_FAILURE, "Failed to save APK file") from e

        logger.debug(f"Stored APK: {target} ({len(content)} bytes)")

    def load(self, application_id: uuid.UUID, version_code: int) -> bytes:
        target = self.path_for(application_id, version_code)
        if not target.is_file():
            raise DomainError(
                ErrorKind.APK_NOT_FOUND,
                f"APK not found for application {application_id} and version {version_code}",
            )
        try:
            return target.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read APK {target}: {e}", exc_info=True)
            raise DomainError(ErrorKind.APK_STORAGE_FAILURE, "Failed to read APK file") from e

    def delete(self, application_id: uuid.UUID, version_code: int) -> None:
        target = self.path_for(application_id, version_code)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete APK {target}: {e}", exc_info=True)
            raise DomainError(ErrorKind.APK_STORAGE_FAILURE, "Failed to delete APK file") from e


@lru_cache
def get_apk_storage() -> ApkStorage:
    """Process-wide APK storage rooted at APK_STORAGE_ROOT."""
    return FileSystemApkStorage(get_settings().APK_STORAGE_ROOT)
