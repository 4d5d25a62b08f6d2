"""Schemas for application management."""
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ApplicationCreateRequest(BaseModel):
    """Request schema for registering an application."""
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    bundle_id: str = Field(..., min_length=1, max_length=255, description="Android package name")


class ApplicationUpdateRequest(BaseModel):
    """Request schema for updating an application."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    bundle_id: Optional[str] = Field(None, min_length=1, max_length=255)


class ApplicationResponse(BaseModel):
    """Response schema for application."""
    id: uuid.UUID
    name: str
    bundle_id: str
    signing_certificate_sha256: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
