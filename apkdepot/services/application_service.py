"""
Service for application management.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from apkdepot.core.errors import DomainError, ErrorKind
from apkdepot.models.application import Application

logger = logging.getLogger(__name__)


class ApplicationService:
    """Create, read, update and delete registered applications."""

    def __init__(self, db: Session, storage=None):
        self.db = db
        self.storage = storage

    def find_by_id(self, application_id: uuid.UUID) -> Optional[Application]:
        return self.db.get(Application, application_id)

    def get_application(self, application_id: uuid.UUID) -> Application:
        application = self.find_by_id(application_id)
        if application is None:
            raise DomainError(
                ErrorKind.APPLICATION_NOT_FOUND, f"Application with id '{application_id}' not found"
            )
        return application

    def create_application(self, name: str, bundle_id: str) -> Application:
        logger.info(f"Creating application: name={name}, bundle_id={bundle_id}")
        if self._bundle_id_taken(bundle_id):
            raise DomainError(
                ErrorKind.BUNDLE_ID_ALREADY_EXISTS, f"Application with bundle id '{bundle_id}' already exists"
            )

        application = Application(
            id=uuid.uuid4(),
            name=name,
            bundle_id=bundle_id,
            signing_certificate_sha256=None,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(application)
        self.db.commit()
        self.db.refresh(application)

        logger.info(f"Application created: id={application.id}")
        return application

    def update_application(
        self, application_id: uuid.UUID, name: Optional[str] = None, bundle_id: Optional[str] = None
    ) -> Application:
        application = self.get_application(application_id)

        if bundle_id is not None and bundle_id != application.bundle_id:
            if application.versions:
                logger.warning(f"Refusing bundle id change for application {application_id}: versions exist")
                raise DomainError(
                    ErrorKind.INVALID_ARGUMENT, "Bundle id can not be changed when versions already exist"
                )
            if self._bundle_id_taken(bundle_id):
                raise DomainError(
                    ErrorKind.BUNDLE_ID_ALREADY_EXISTS, f"Application with bundle id '{bundle_id}' already exists"
                )
            application.bundle_id = bundle_id
        if name is not None:
            application.name = name

        self.db.commit()
        self.db.refresh(application)
        logger.info(f"Application updated: id={application_id}")
        return application

    def list_applications(self, page: int = 0, size: int = 20) -> Tuple[List[Application], int]:
        query = self.db.query(Application)
        total = query.count()
        items = query.order_by(Application.created_at.desc(), Application.name.asc()).offset(page * size).limit(size).all()
        return items, total

    def delete_application(self, application_id: uuid.UUID) -> None:
        """
        Delete an application together with its API keys and versions.

        Stored APKs are removed first; a file that cannot be deleted is logged
        and skipped.
        """
        application = self.get_application(application_id)
        if self.storage is not None:
            for version in application.versions:
                try:
                    self.storage.delete(application_id, version.version_code)
                except DomainError as e:
                    logger.error(
                        f"Failed to delete APK for application {application_id}, "
                        f"version {version.version_code}: {e.message}. Continuing."
                    )
        self.db.delete(application)
        self.db.commit()
        logger.info(f"Application deleted: id={application_id}")

    def _bundle_id_taken(self, bundle_id: str) -> bool:
        return self.db.query(Application.id).filter(Application.bundle_id == bundle_id).first() is not None
