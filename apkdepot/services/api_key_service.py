"""
Service for application API keys.

The raw secret leaves this service exactly once, in the result of
create_api_key. Only its SHA-256 digest is stored.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from apkdepot.core.errors import DomainError, ErrorKind
from apkdepot.core.roles import ApiKeyRole, parse_api_key_role
from apkdepot.core.security import generate_api_key_secret, hash_api_key_secret
from apkdepot.models.api_key import ApiKey
from apkdepot.services.application_service import ApplicationService

logger = logging.getLogger(__name__)

# Attempts at drawing a secret whose digest is not stored yet
MAX_GENERATION_ATTEMPTS = 2


def now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CreatedApiKey:
    record: ApiKey
    raw_secret: str


@dataclass(frozen=True)
class ApiKeyPrincipal:
    application_id: uuid.UUID
    role: ApiKeyRole
    api_key_id: uuid.UUID


class ApiKeyService:
    """API key creation, listing, revocation and authentication."""

    def __init__(self, db: Session):
        self.db = db
        self.applications = ApplicationService(db)

    def create_api_key(
        self,
        application_id: uuid.UUID,
        name: str,
        role: str,
        expire_by_millis: Optional[int] = None,
    ) -> CreatedApiKey:
        """
        Create an API key for an application.

        Args:
            application_id: Owning application
            name: Human readable label
            role: "CI" or "CONSUMER"
            expire_by_millis: Lifetime from now in milliseconds; None or 0 means no expiry

        Raises:
            DomainError: APPLICATION_NOT_FOUND, INVALID_API_KEY_ROLE, INVALID_ARGUMENT
        """
        logger.info(f"Creating API key for application: {application_id}, name: {name}, role: {role}")

        self.applications.get_application(application_id)

        key_role = parse_api_key_role(role)
        if key_role is None:
            raise DomainError(
                ErrorKind.INVALID_API_KEY_ROLE, f"Invalid API key role: {role}. Must be CI or CONSUMER"
            )

        now = now_millis()
        expires_at = self._calculate_expires_at(now, expire_by_millis)

        raw_secret, value_hash = self._generate_unique_secret()

        api_key = ApiKey(
            id=uuid.uuid4(),
            name=name,
            value_hash=value_hash,
            role=key_role,
            application_id=application_id,
            is_active=True,
            created_at=now,
            last_used_at=None,
            expires_at=expires_at,
            token_version=0,
        )
        self.db.add(api_key)
        self.db.commit()
        self.db.refresh(api_key)

        logger.info(f"API key created successfully: id={api_key.id}, applicationId={application_id}")
        return CreatedApiKey(record=api_key, raw_secret=raw_secret)

    def list_api_keys(
        self,
        application_id: uuid.UUID,
        role: Optional[ApiKeyRole] = None,
        is_active: Optional[bool] = None,
        page: int = 0,
        size: int = 20,
    ) -> Tuple[List[ApiKey], int]:
        """
        Page of an application's API keys, newest first.

        is_active=True narrows to active keys. False and None both return
        active and revoked keys alike; existing clients send false to mean
        "everything".
        """
        logger.info(f"Listing API keys for application: {application_id}, role: {role}, is_active: {is_active}")
        self.applications.get_application(application_id)

        query = self.db.query(ApiKey).filter(ApiKey.application_id == application_id)
        if role is not None:
            query = query.filter(ApiKey.role == role)
        if is_active is True:
            query = query.filter(ApiKey.is_active.is_(True))

        total = query.count()
        items = query.order_by(ApiKey.created_at.desc(), ApiKey.name.asc()).offset(page * size).limit(size).all()
        logger.info(f"Retrieved {total} API keys for application: {application_id}")
        return items, total

    def revoke_api_key(self, application_id: uuid.UUID, api_key_id: uuid.UUID) -> ApiKey:
        """
        Deactivate an API key. Revoking an already revoked key is a no-op.

        Raises:
            DomainError: APPLICATION_NOT_FOUND, API_KEY_NOT_FOUND
        """
        logger.info(f"Revoking API key: id={api_key_id}, applicationId={application_id}")
        self.applications.get_application(application_id)

        api_key = (
            self.db.query(ApiKey)
            .filter(ApiKey.id == api_key_id, ApiKey.application_id == application_id)
            .first()
        )
        if api_key is None:
            raise DomainError(
                ErrorKind.API_KEY_NOT_FOUND,
                f"API key with ID '{api_key_id}' not found for application '{application_id}'",
            )

        if api_key.is_active:
            api_key.is_active = False
            self.db.commit()
            self.db.refresh(api_key)
            logger.info(f"API key revoked successfully: id={api_key_id}")
        else:
            logger.info(f"API key already revoked: id={api_key_id}")
        return api_key

    def authenticate_api_key(self, raw_secret: str) -> ApiKeyPrincipal:
        """
        Resolve a presented secret into its application principal.

        Checks run in order: known key, active, not expired. On success the
        key's last-used timestamp is stamped.

        Raises:
            DomainError: INVALID_API_KEY, API_KEY_REVOKED, API_KEY_EXPIRED
        """
        api_key = self.find_by_secret(raw_secret)
        if api_key is None:
            logger.warning("API key authentication failed: API key not found or invalid")
            raise DomainError(ErrorKind.INVALID_API_KEY)

        if not api_key.is_active:
            logger.warning(f"API key authentication failed: API key is revoked (id: {api_key.id})")
            raise DomainError(ErrorKind.API_KEY_REVOKED)

        now = now_millis()
        if api_key.expires_at is not None and now > api_key.expires_at:
            logger.warning(f"API key authentication failed: API key is expired (id: {api_key.id})")
            raise DomainError(ErrorKind.API_KEY_EXPIRED)

        api_key.last_used_at = now
        self.db.commit()

        logger.info(
            f"API key authenticated successfully: id={api_key.id}, role={api_key.role.value}, "
            f"applicationId={api_key.application_id}"
        )
        return ApiKeyPrincipal(application_id=api_key.application_id, role=api_key.role, api_key_id=api_key.id)

    def find_by_secret(self, raw_secret: str) -> Optional[ApiKey]:
        if not raw_secret:
            return None
        return self.db.query(ApiKey).filter(ApiKey.value_hash == hash_api_key_secret(raw_secret)).first()

    @staticmethod
    def _calculate_expires_at(now: int, expire_by_millis: Optional[int]) -> Optional[int]:
        if expire_by_millis is None or expire_by_millis == 0:
            return None
        if expire_by_millis < 0:
            raise DomainError(ErrorKind.INVALID_ARGUMENT, "expire_by cannot be negative")
        return now + expire_by_millis

    def _generate_unique_secret(self) -> Tuple[str, str]:
        for _ in range(MAX_GENERATION_ATTEMPTS):
            raw_secret = generate_api_key_secret()
            value_hash = hash_api_key_secret(raw_secret)
            taken = self.db.query(ApiKey.id).filter(ApiKey.value_hash == value_hash).first()
            if taken is None:
                return raw_secret, value_hash
            logger.error("Generated API key collides with an existing key, retrying")
        raise RuntimeError("Failed to generate unique API key")
