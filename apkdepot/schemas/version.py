"""Schemas for application versions."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class VersionStabilityUpdateRequest(BaseModel):
    """Request schema for marking a version stable or unstable."""
    stable: bool = Field(..., description="Stable versions are served as the latest version")


class VersionResponse(BaseModel):
    """Response schema for an application version."""
    version_code: int
    version_name: Optional[str] = None
    stable: bool
    created_at: datetime

    model_config = {"from_attributes": True}
