"""
Pytest configuration and fixtures.
"""
import os

# Settings are read once at import time, so the test environment must be in
# place before anything from apkdepot is imported.
os.environ["JWT_SECRET"] = "test-signing-secret-that-is-long-enough-for-hs256"
os.environ["JWT_ISSUER"] = "apk-depot-test"
os.environ["SUPER_ADMIN_LOGIN"] = "admin"
os.environ["SUPER_ADMIN_PASSWORD"] = "SuperAdmin123"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_DIR"] = ""
os.environ.pop("DATABASE_URL", None)

import pytest
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from apkdepot.core.auth import get_token_engine
from apkdepot.core.config import get_settings
from apkdepot.core.database import Base, build_engine, get_db
from apkdepot.core.errors import DomainError, ErrorKind
from apkdepot.core.roles import UserRole
from apkdepot.main import app
from apkdepot.services.apk_metadata import ApkMetadata, ApkMetadataExtractor, get_metadata_extractor
from apkdepot.services.apk_storage import FileSystemApkStorage, get_apk_storage
from apkdepot.services.application_service import ApplicationService
from apkdepot.services.super_admin_seeder import seed_super_admin
from apkdepot.services.user_service import UserService

# Import all models to ensure they register with Base.metadata
from apkdepot.models import User, Application, ApiKey, ApplicationVersion  # noqa: F401

ADMIN_PASSWORD = "Password123!"

RELEASE_CERTIFICATE = "A1" * 32

# Use file-based SQLite for testing (more reliable than in-memory)
TEST_DATABASE_URL = "sqlite:///./test_apk_depot.db"

test_engine = build_engine(TEST_DATABASE_URL)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """
    Create all tables before tests run and drop them after all tests complete.
    """
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function", autouse=True)
def clean_tables():
    """Empty every table after each test so tests stay independent."""
    yield
    db = TestingSessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
    finally:
        db.close()


class FakeMetadataExtractor(ApkMetadataExtractor):
    """Reads metadata from test APKs built by the make_apk fixture: b"apk|<code>|<name>|<cert>"."""

    def extract(self, content):
        try:
            marker, code, name, certificate = content.decode().split("|")
        except ValueError:
            marker = None
        if marker != "apk":
            raise DomainError(ErrorKind.INVALID_APK, "Failed to parse APK file: not a test APK")
        return ApkMetadata(version_code=int(code), version_name=name, signing_certificate_sha256=certificate)


@pytest.fixture
def apk_storage(tmp_path):
    return FileSystemApkStorage(tmp_path / "apks")


@pytest.fixture
def metadata_extractor():
    return FakeMetadataExtractor()


@pytest.fixture
def make_apk():
    """Build APK bytes the fake extractor understands."""
    def _make(version_code, version_name="1.0", certificate=RELEASE_CERTIFICATE):
        return f"apk|{version_code}|{version_name}|{certificate}".encode()

    return _make


@pytest.fixture(scope="function")
def client(apk_storage, metadata_extractor):
    """
    Create a test client with database override.

    The get_db dependency is overridden to use TestingSessionLocal,
    creating a new session for each request (as FastAPI expects). APK
    storage goes to a temporary directory and metadata comes from the fake
    extractor.
    """
    def override_get_db():
        """Override get_db dependency to use test database session."""
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_apk_storage] = lambda: apk_storage
    app.dependency_overrides[get_metadata_extractor] = lambda: metadata_extractor

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def db_session():
    """
    Provide a database session for tests that need direct DB access.
    """
    db = TestingSessionLocal()
    try:
        yield db
        db.rollback()
    finally:
        db.close()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def token_engine():
    return get_token_engine()


@pytest.fixture
def admin_user(db_session):
    """An active ADMIN user "alice" with a known password."""
    return UserService(db_session).create_user(login="alice", password=ADMIN_PASSWORD, role=UserRole.ADMIN)


@pytest.fixture
def super_admin(db_session, settings):
    """The bootstrap super admin."""
    return seed_super_admin(db_session, settings)


@pytest.fixture
def ci_user(db_session):
    return UserService(db_session).create_user(login="ci-runner", password=None, role=UserRole.CI)


@pytest.fixture
def application(db_session):
    return ApplicationService(db_session).create_application(name="Field App", bundle_id="com.example.field")


@pytest.fixture
def auth_headers(token_engine):
    """Build bearer headers carrying a fresh access token for a user."""
    def _headers(user):
        token, _ = token_engine.issue_access_token(user.id, user.role.value, user.token_version)
        return {"Authorization": f"Bearer {token}"}

    return _headers
