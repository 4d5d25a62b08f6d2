"""
Authentication endpoints.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from apkdepot.core.access_control import Principal
from apkdepot.core.auth import get_current_principal, get_token_engine
from apkdepot.core.database import get_db
from apkdepot.core.tokens import TokenEngine
from apkdepot.schemas.auth import (
    ApiKeyLoginRequest,
    ApiTokenResponse,
    LoginRequest,
    MeResponse,
    RefreshTokenRequest,
    TokenPairResponse,
)
from apkdepot.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=TokenPairResponse)
def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
    token_engine: TokenEngine = Depends(get_token_engine),
):
    """
    Log in with login and password (ADMIN users only).

    Returns an access/refresh token pair.
    """
    pair = AuthService(db, token_engine).login(request.login, request.password)
    return TokenPairResponse.from_pair(pair)


@router.post("/refresh", response_model=TokenPairResponse)
def refresh(
    request: RefreshTokenRequest,
    db: Session = Depends(get_db),
    token_engine: TokenEngine = Depends(get_token_engine),
):
    """Exchange a refresh token for a fresh token pair."""
    pair = AuthService(db, token_engine).refresh(request.refresh_token)
    return TokenPairResponse.from_pair(pair)


@router.post("/apikey", response_model=ApiTokenResponse)
def login_with_api_key(
    request: ApiKeyLoginRequest,
    db: Session = Depends(get_db),
    token_engine: TokenEngine = Depends(get_token_engine),
):
    """
    Exchange an application API key for an access token.

    Unknown, revoked and expired keys are reported as distinct errors.
    """
    token = AuthService(db, token_engine).login_with_api_key(request.api_key)
    return ApiTokenResponse(
        access_token=token.access_token,
        access_token_expires_at=int(token.expires_at.timestamp()),
    )


@router.get("/me", response_model=MeResponse)
def get_current_principal_info(
    principal: Principal = Depends(get_current_principal),
):
    """
    Get the authenticated principal (user or API key) and its role.

    Useful for frontend to determine if user is admin.
    """
    return MeResponse(
        principal_type=principal.kind,
        role=principal.role,
        is_admin=principal.is_admin,
        user_id=principal.user_id,
        application_id=principal.application_id,
    )
