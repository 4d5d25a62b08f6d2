"""
Tests for settings validation.
"""
import pytest
from pydantic import ValidationError

from apkdepot.core.config import DEFAULT_JWT_SECRET, Settings


def test_short_jwt_secret_is_rejected():
    with pytest.raises(ValidationError):
        Settings(JWT_SECRET="too-short")


def test_refresh_ttl_must_exceed_access_ttl():
    with pytest.raises(ValidationError):
        Settings(JWT_ACCESS_TOKEN_VALIDITY_SECONDS=600, JWT_REFRESH_TOKEN_VALIDITY_SECONDS=600)


def test_postgres_url_is_rewritten():
    settings = Settings(DATABASE_URL="postgres://user:pass@db:5432/apkdepot")

    assert settings.sqlalchemy_database_uri == "postgresql+psycopg2://user:pass@db:5432/apkdepot"


def test_cors_origins_accept_comma_separated():
    settings = Settings(CORS_ORIGINS="https://a.example, https://b.example")

    assert settings.CORS_ORIGINS == ["https://a.example", "https://b.example"]


def test_jwt_settings_snapshot():
    settings = Settings(JWT_ISSUER="issuer-x")

    jwt_settings = settings.jwt_settings()

    assert jwt_settings.issuer == "issuer-x"
    assert jwt_settings.refresh_token_validity_seconds > jwt_settings.access_token_validity_seconds


def test_default_jwt_secret_is_rejected_in_production():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, APP_ENV="production", JWT_SECRET=DEFAULT_JWT_SECRET)


def test_default_jwt_secret_is_allowed_outside_production():
    settings = Settings(_env_file=None, APP_ENV="local", JWT_SECRET=DEFAULT_JWT_SECRET)

    assert settings.is_production is False


def test_strong_jwt_secret_is_accepted_in_production():
    settings = Settings(_env_file=None, APP_ENV="Production", JWT_SECRET="x9" * 24)

    assert settings.is_production is True
