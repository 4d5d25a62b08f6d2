"""
Application API key endpoints.
"""
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from apkdepot.core.access_control import Principal
from apkdepot.core.auth import require_role
from apkdepot.core.database import get_db
from apkdepot.core.errors import DomainError, ErrorKind
from apkdepot.core.roles import UserRole, parse_api_key_role
from apkdepot.schemas.api_key import ApiKeyCreateRequest, ApiKeyCreateResponse, ApiKeyResponse
from apkdepot.schemas.common import PagedResponse
from apkdepot.services.api_key_service import ApiKeyService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ApiKeyCreateResponse, status_code=status.HTTP_201_CREATED)
def create_api_key(
    application_id: uuid.UUID,
    request: ApiKeyCreateRequest,
    principal: Principal = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    """
    Create an API key for an application (admin only).

    Returns the full key once in the response. Only its hash is stored.
    """
    try:
        created = ApiKeyService(db).create_api_key(
            application_id=application_id,
            name=request.name,
            role=request.role,
            expire_by_millis=request.expire_by,
        )
    except DomainError:
        raise
    except Exception as e:
        logger.error(f"Error creating API key: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create API key"
        )

    logger.info(f"{principal.name} created API key {created.record.id} for application {application_id}")
    return ApiKeyCreateResponse(**ApiKeyResponse.fields_from(created.record), api_key=created.raw_secret)


@router.get("", response_model=PagedResponse[ApiKeyResponse])
def list_api_keys(
    application_id: uuid.UUID,
    role: Optional[str] = Query(None, description="Filter by role (CI or CONSUMER)"),
    is_active: Optional[bool] = Query(None, description="true lists active keys only; false or omitted lists all"),
    page: int = Query(0, ge=0, description="Page number (0-indexed)"),
    size: int = Query(20, ge=1, le=100, description="Page size"),
    _principal: Principal = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    """List an application's API keys (admin only). Secrets are never included."""
    role_filter = None
    if role is not None:
        role_filter = parse_api_key_role(role)
        if role_filter is None:
            raise DomainError(ErrorKind.INVALID_API_KEY_ROLE, f"Invalid API key role: {role}. Must be CI or CONSUMER")

    keys, total = ApiKeyService(db).list_api_keys(
        application_id, role=role_filter, is_active=is_active, page=page, size=size
    )
    return PagedResponse[ApiKeyResponse](
        items=[ApiKeyResponse.from_record(key) for key in keys],
        total=total,
        page=page,
        size=size,
    )


@router.post("/{api_key_id}/revoke", response_model=ApiKeyResponse)
def revoke_api_key(
    application_id: uuid.UUID,
    api_key_id: uuid.UUID,
    principal: Principal = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    """
    Revoke an API key (admin only).

    The key can no longer be exchanged for tokens. Revoking twice is harmless.
    """
    api_key = ApiKeyService(db).revoke_api_key(application_id, api_key_id)
    logger.info(f"{principal.name} revoked API key {api_key_id}")
    return ApiKeyResponse.from_record(api_key)
