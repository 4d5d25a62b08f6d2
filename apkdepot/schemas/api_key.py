"""Schemas for application API keys."""
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


def _from_millis(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


class ApiKeyCreateRequest(BaseModel):
    """Request schema for creating an API key."""
    name: str = Field(..., min_length=1, max_length=255, description="Label for the API key")
    role: str = Field(..., description="CI or CONSUMER")
    expire_by: Optional[int] = Field(
        None, description="Lifetime in milliseconds from now; omit or 0 for a key that never expires"
    )


class ApiKeyResponse(BaseModel):
    """Response schema for API key (safe fields only)."""
    id: uuid.UUID
    name: str
    role: str
    application_id: uuid.UUID
    is_active: bool
    created_at: datetime
    last_used_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def fields_from(cls, record) -> dict:
        return {
            "id": record.id,
            "name": record.name,
            "role": record.role.value,
            "application_id": record.application_id,
            "is_active": record.is_active,
            "created_at": _from_millis(record.created_at),
            "last_used_at": _from_millis(record.last_used_at),
            "expires_at": _from_millis(record.expires_at),
        }

    @classmethod
    def from_record(cls, record) -> "ApiKeyResponse":
        return cls(**cls.fields_from(record))


class ApiKeyCreateResponse(ApiKeyResponse):
    """Response schema for API key creation (includes the secret once)."""
    api_key: str  # never stored, never returned again
