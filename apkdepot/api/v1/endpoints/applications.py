"""
Application management endpoints.
"""
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from apkdepot.core.access_control import Principal
from apkdepot.core.auth import require_role
from apkdepot.core.database import get_db
from apkdepot.core.errors import DomainError
from apkdepot.core.roles import UserRole
from apkdepot.schemas.application import (
    ApplicationCreateRequest,
    ApplicationResponse,
    ApplicationUpdateRequest,
)
from apkdepot.schemas.common import PagedResponse
from apkdepot.services.apk_storage import ApkStorage, get_apk_storage
from apkdepot.services.application_service import ApplicationService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=PagedResponse[ApplicationResponse])
def list_applications(
    page: int = Query(0, ge=0, description="Page number (0-indexed)"),
    size: int = Query(20, ge=1, le=100, description="Page size"),
    _principal: Principal = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    """List registered applications, newest first."""
    applications, total = ApplicationService(db).list_applications(page=page, size=size)
    return PagedResponse[ApplicationResponse](
        items=[ApplicationResponse.model_validate(application) for application in applications],
        total=total,
        page=page,
        size=size,
    )


@router.post("", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
def create_application(
    request: ApplicationCreateRequest,
    _principal: Principal = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    """Register a new application (admin only)."""
    try:
        application = ApplicationService(db).create_application(name=request.name, bundle_id=request.bundle_id)
    except DomainError:
        raise
    except Exception as e:
        logger.error(f"Error creating application: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create application"
        )
    return ApplicationResponse.model_validate(application)


@router.get("/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: uuid.UUID,
    _principal: Principal = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    """Get an application by id."""
    return ApplicationResponse.model_validate(ApplicationService(db).get_application(application_id))


@router.put("/{application_id}", response_model=ApplicationResponse)
def update_application(
    application_id: uuid.UUID,
    request: ApplicationUpdateRequest,
    _principal: Principal = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    """Update an application's name or bundle id (admin only)."""
    application = ApplicationService(db).update_application(
        application_id, name=request.name, bundle_id=request.bundle_id
    )
    return ApplicationResponse.model_validate(application)


@router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_application(
    application_id: uuid.UUID,
    principal: Principal = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
    storage: ApkStorage = Depends(get_apk_storage),
):
    """Delete an application with its API keys, versions and stored APKs (admin only)."""
    ApplicationService(db, storage).delete_application(application_id)
    logger.info(f"{principal.name} deleted application {application_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
