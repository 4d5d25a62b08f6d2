"""
Application configuration settings.

Central configuration module using Pydantic BaseSettings with environment variable support.
Loads from .env file and environment variables.
"""
import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Union

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file if it exists (python-dotenv)
env_path = Path(".env")
if env_path.exists():
    load_dotenv(dotenv_path=env_path)

# HS256 needs at least 256 bits of key material
MIN_JWT_SECRET_BYTES = 32

DEFAULT_JWT_SECRET = "local-development-secret-change-me-before-deploying"
INSECURE_JWT_SECRETS = {DEFAULT_JWT_SECRET, "changeme", "change-me", "secret", "password"}
PRODUCTION_ENVIRONMENTS = {"production", "prod"}


@dataclass(frozen=True)
class JwtSettings:
    """Signing configuration handed to the token engine. Fixed for the process lifetime."""
    secret: str
    issuer: str
    access_token_validity_seconds: int
    refresh_token_validity_seconds: int


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App settings
    APP_NAME: str = "APK Depot"
    APP_ENV: str = Field(default="local")
    DEBUG: bool = Field(default=False)

    # Database connection string; SQLite file when unset
    DATABASE_URL: Optional[str] = Field(
        default=None,
        description="Database connection URL",
    )

    @property
    def sqlalchemy_database_uri(self) -> str:
        """
        Build SQLAlchemy database URI.

        postgres:// URLs (as handed out by most hosting providers) are rewritten
        to the psycopg2 dialect; without DATABASE_URL a local SQLite file is used.
        """
        if self.DATABASE_URL:
            if self.DATABASE_URL.startswith("postgres://"):
                return self.DATABASE_URL.replace("postgres://", "postgresql+psycopg2://", 1)
            return self.DATABASE_URL
        return "sqlite:///./apk_depot.db"

    # CORS settings
    CORS_ORIGINS: Union[str, List[str]] = Field(
        default='["http://localhost:3000", "http://localhost:8000"]',
        validate_default=True,
    )

    @field_validator("CORS_ORIGINS")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from string or list."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                # If not JSON, treat as comma-separated
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    LOG_DIR: Optional[str] = Field(
        default="logs",
        description="Directory for the rotating log file; empty disables file logging",
    )

    # JWT signing
    JWT_SECRET: str = Field(
        default=DEFAULT_JWT_SECRET,
        description="Symmetric HS256 signing secret (at least 32 bytes)",
    )
    JWT_ISSUER: str = Field(default="apk-depot", description="Issuer claim written to and required on every token")
    JWT_ACCESS_TOKEN_VALIDITY_SECONDS: int = Field(default=15 * 60)
    JWT_REFRESH_TOKEN_VALIDITY_SECONDS: int = Field(default=14 * 24 * 60 * 60)

    # Super admin provisioned at startup
    SUPER_ADMIN_LOGIN: str = Field(default="admin")
    SUPER_ADMIN_PASSWORD: Optional[str] = Field(
        default=None,
        description="Password for the bootstrap super admin. Provisioning is skipped when unset.",
    )

    # APK storage
    APK_STORAGE_ROOT: str = Field(
        default="./data/apks",
        description="Directory under which uploaded APK files are kept",
    )
    MAX_APK_SIZE: int = Field(
        default=200 * 1024 * 1024,
        description="Max APK upload size in bytes (200MB default)",
    )

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.strip().lower() in PRODUCTION_ENVIRONMENTS

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Reject secrets too short for HS256."""
        if len(v.encode("utf-8")) < MIN_JWT_SECRET_BYTES:
            raise ValueError(f"JWT_SECRET must be at least {MIN_JWT_SECRET_BYTES} bytes long")
        return v

    @model_validator(mode="after")
    def validate_token_ttls(self) -> "Settings":
        """Access TTL must be positive and strictly shorter than refresh TTL."""
        if self.JWT_ACCESS_TOKEN_VALIDITY_SECONDS <= 0:
            raise ValueError("JWT_ACCESS_TOKEN_VALIDITY_SECONDS must be positive")
        if self.JWT_REFRESH_TOKEN_VALIDITY_SECONDS <= self.JWT_ACCESS_TOKEN_VALIDITY_SECONDS:
            raise ValueError(
                "JWT_REFRESH_TOKEN_VALIDITY_SECONDS must be greater than JWT_ACCESS_TOKEN_VALIDITY_SECONDS"
            )
        return self

    @model_validator(mode="after")
    def validate_security_requirements(self) -> "Settings":
        """Production refuses to start with the bundled or a well-known signing secret."""
        if not self.is_production:
            return self
        if self.JWT_SECRET.strip() in INSECURE_JWT_SECRETS:
            raise ValueError("JWT_SECRET must be set to a strong, non-default value in production")
        return self

    def jwt_settings(self) -> JwtSettings:
        """Snapshot of the signing configuration."""
        return JwtSettings(
            secret=self.JWT_SECRET,
            issuer=self.JWT_ISSUER,
            access_token_validity_seconds=self.JWT_ACCESS_TOKEN_VALIDITY_SECONDS,
            refresh_token_validity_seconds=self.JWT_REFRESH_TOKEN_VALIDITY_SECONDS,
        )


# Create global settings instance
@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

settings = get_settings()
