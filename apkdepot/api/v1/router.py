"""
API v1 router.
"""
from fastapi import APIRouter

from apkdepot.api.v1.endpoints import api_keys, applications, auth, health, users, versions

api_router = APIRouter()

# Health check endpoint (no prefix, so it's /api/v1/health)
api_router.include_router(health.router, tags=["health"])

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/user", tags=["users"])
api_router.include_router(applications.router, prefix="/application", tags=["applications"])
api_router.include_router(
    api_keys.router, prefix="/application/{application_id}/security/apikey", tags=["api-keys"]
)
api_router.include_router(
    versions.router, prefix="/application/{application_id}/version", tags=["versions"]
)
