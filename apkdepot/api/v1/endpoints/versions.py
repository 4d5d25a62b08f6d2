"""
Application version endpoints.

Management (list, get, delete) is admin only. CI principals upload builds and
flip their stability; CONSUMER principals fetch the latest stable version and
download APKs. API key principals are limited to their own application.
"""
import logging
import uuid

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from apkdepot.core.access_control import Principal, check_application_scope
from apkdepot.core.auth import require_role
from apkdepot.core.config import Settings, get_settings
from apkdepot.core.database import get_db
from apkdepot.core.errors import DomainError
from apkdepot.core.roles import ApiKeyRole, UserRole
from apkdepot.schemas.common import PagedResponse
from apkdepot.schemas.version import VersionResponse, VersionStabilityUpdateRequest
from apkdepot.services.apk_metadata import ApkMetadataExtractor, get_metadata_extractor
from apkdepot.services.apk_storage import ApkStorage, get_apk_storage
from apkdepot.services.version_service import VersionService

logger = logging.getLogger(__name__)

router = APIRouter()

APK_MEDIA_TYPE = "application/vnd.android.package-archive"

admin_only = require_role(UserRole.ADMIN)
admin_or_ci = require_role(UserRole.ADMIN, UserRole.CI, ApiKeyRole.CI)
admin_or_consumer = require_role(UserRole.ADMIN, UserRole.CONSUMER, ApiKeyRole.CONSUMER)


@router.get("", response_model=PagedResponse[VersionResponse])
def list_versions(
    application_id: uuid.UUID,
    page: int = Query(0, ge=0, description="Page number (0-indexed)"),
    size: int = Query(20, ge=1, le=100, description="Page size"),
    _principal: Principal = Depends(admin_only),
    db: Session = Depends(get_db),
    storage: ApkStorage = Depends(get_apk_storage),
):
    """List an application's versions, newest first (admin only)."""
    versions, total = VersionService(db, storage).list_versions(application_id, page=page, size=size)
    return PagedResponse[VersionResponse](
        items=[VersionResponse.model_validate(version) for version in versions],
        total=total,
        page=page,
        size=size,
    )


@router.post("", response_model=VersionResponse, status_code=status.HTTP_201_CREATED)
def upload_version(
    application_id: uuid.UUID,
    file: UploadFile = File(..., description="APK file"),
    principal: Principal = Depends(admin_or_ci),
    db: Session = Depends(get_db),
    storage: ApkStorage = Depends(get_apk_storage),
    extractor: ApkMetadataExtractor = Depends(get_metadata_extractor),
    settings: Settings = Depends(get_settings),
):
    """
    Upload a new APK build.

    Version code, version name and signing certificate are read from the APK.
    The first upload pins the application's signing certificate; later uploads
    must be signed with the same certificate and carry a higher version code.
    New versions are unstable until marked otherwise.
    """
    check_application_scope(principal, application_id)

    content = file.file.read(settings.MAX_APK_SIZE + 1)
    if len(content) > settings.MAX_APK_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size exceeds maximum allowed size of {settings.MAX_APK_SIZE} bytes"
        )

    try:
        version = VersionService(db, storage, extractor).upload_version(application_id, content)
    except DomainError:
        raise
    except Exception as e:
        logger.error(f"Error uploading version for application {application_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to upload version"
        )

    logger.info(
        f"{principal.name} uploaded version {version.version_code} ({file.filename}, {len(content)} bytes) "
        f"for application {application_id}"
    )
    return VersionResponse.model_validate(version)


@router.get("/latest", response_model=VersionResponse)
def get_latest_version(
    application_id: uuid.UUID,
    principal: Principal = Depends(admin_or_consumer),
    db: Session = Depends(get_db),
    storage: ApkStorage = Depends(get_apk_storage),
):
    """Get the newest stable version, used by clients checking for updates."""
    check_application_scope(principal, application_id)
    return VersionResponse.model_validate(VersionService(db, storage).get_latest_version(application_id))


@router.get("/{version_code}", response_model=VersionResponse)
def get_version(
    application_id: uuid.UUID,
    version_code: int,
    _principal: Principal = Depends(admin_only),
    db: Session = Depends(get_db),
    storage: ApkStorage = Depends(get_apk_storage),
):
    """Get a version by version code (admin only)."""
    return VersionResponse.model_validate(VersionService(db, storage).get_version(application_id, version_code))


@router.get("/{version_code}/apk")
def download_apk(
    application_id: uuid.UUID,
    version_code: int,
    principal: Principal = Depends(admin_or_consumer),
    db: Session = Depends(get_db),
    storage: ApkStorage = Depends(get_apk_storage),
):
    """Download the APK of a version as an attachment."""
    check_application_scope(principal, application_id)
    application, content = VersionService(db, storage).load_apk(application_id, version_code)
    filename = f"{application.bundle_id}-{version_code}.apk"
    logger.info(f"{principal.name} downloading {filename}")
    return Response(
        content=content,
        media_type=APK_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/{version_code}", response_model=VersionResponse)
def update_version_stability(
    application_id: uuid.UUID,
    version_code: int,
    request: VersionStabilityUpdateRequest,
    principal: Principal = Depends(admin_or_ci),
    db: Session = Depends(get_db),
    storage: ApkStorage = Depends(get_apk_storage),
):
    """Mark a version stable or unstable."""
    check_application_scope(principal, application_id)
    version = VersionService(db, storage).update_stability(application_id, version_code, request.stable)
    return VersionResponse.model_validate(version)


@router.delete("/{version_code}", status_code=status.HTTP_204_NO_CONTENT)
def delete_version(
    application_id: uuid.UUID,
    version_code: int,
    principal: Principal = Depends(admin_only),
    db: Session = Depends(get_db),
    storage: ApkStorage = Depends(get_apk_storage),
):
    """Delete a version and its APK (admin only). Cannot be undone."""
    VersionService(db, storage).delete_version(application_id, version_code)
    logger.info(f"{principal.name} deleted version {version_code} of application {application_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
