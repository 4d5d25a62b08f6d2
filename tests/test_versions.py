"""
Tests for application versions: upload rules, storage and role gates.
"""
import hashlib

import pytest
from fastapi import status

from apkdepot.core.config import Settings, get_settings
from apkdepot.core.errors import DomainError, ErrorKind
from apkdepot.main import app
from apkdepot.models.application import Application
from apkdepot.models.application_version import ApplicationVersion
from apkdepot.services.apk_metadata import certificate_fingerprint
from apkdepot.services.api_key_service import ApiKeyService
from apkdepot.services.application_service import ApplicationService
from apkdepot.services.version_service import VersionService

APK_MEDIA_TYPE = "application/vnd.android.package-archive"
OTHER_CERTIFICATE = "B2" * 32


@pytest.fixture
def versions(db_session, apk_storage, metadata_extractor):
    return VersionService(db_session, apk_storage, metadata_extractor)


@pytest.fixture
def api_key_token(client, db_session):
    """Exchange a freshly created API key for an access token, the way a pipeline would."""
    def _token(application, role):
        created = ApiKeyService(db_session).create_api_key(application.id, f"{role} key", role)
        response = client.post("/api/v1/auth/apikey", json={"api_key": created.raw_secret})
        assert response.status_code == status.HTTP_200_OK
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _token


def _upload(client, application, headers, content):
    return client.post(
        f"/api/v1/application/{application.id}/version",
        headers=headers,
        files={"file": ("app-release.apk", content, APK_MEDIA_TYPE)},
    )


# Service rules

def test_first_upload_pins_certificate(db_session, versions, application, apk_storage, make_apk):
    version = versions.upload_version(application.id, make_apk(1, "1.0"))

    assert version.version_code == 1
    assert version.version_name == "1.0"
    assert version.stable is False
    db_session.expire_all()
    assert db_session.get(Application, application.id).signing_certificate_sha256 == "A1" * 32
    assert apk_storage.load(application.id, 1) == make_apk(1, "1.0")


def test_upload_with_other_certificate_is_rejected(versions, application, apk_storage, make_apk):
    versions.upload_version(application.id, make_apk(1))

    with pytest.raises(DomainError) as exc_info:
        versions.upload_version(application.id, make_apk(2, certificate=OTHER_CERTIFICATE))

    assert exc_info.value.kind == ErrorKind.SIGNING_CERTIFICATE_MISMATCH
    assert not apk_storage.path_for(application.id, 2).exists()


def test_duplicate_version_code_conflicts(versions, application, make_apk):
    versions.upload_version(application.id, make_apk(5))

    with pytest.raises(DomainError) as exc_info:
        versions.upload_version(application.id, make_apk(5))

    assert exc_info.value.kind == ErrorKind.APPLICATION_VERSION_ALREADY_EXISTS
    assert exc_info.value.status_code == status.HTTP_409_CONFLICT


def test_version_code_must_increase(versions, application, make_apk):
    versions.upload_version(application.id, make_apk(5))

    with pytest.raises(DomainError) as exc_info:
        versions.upload_version(application.id, make_apk(4))

    assert exc_info.value.kind == ErrorKind.INVALID_VERSION_CODE


def test_unparseable_and_empty_uploads(versions, application):
    with pytest.raises(DomainError) as exc_info:
        versions.upload_version(application.id, b"PK\x03\x04 not really an apk")
    assert exc_info.value.kind == ErrorKind.INVALID_APK

    with pytest.raises(DomainError) as exc_info:
        versions.upload_version(application.id, b"")
    assert exc_info.value.kind == ErrorKind.INVALID_ARGUMENT


def test_latest_is_highest_stable_version(versions, application, make_apk):
    for code in (1, 2, 3):
        versions.upload_version(application.id, make_apk(code, f"1.{code}"))

    with pytest.raises(DomainError) as exc_info:
        versions.get_latest_version(application.id)
    assert exc_info.value.kind == ErrorKind.APPLICATION_VERSION_NOT_FOUND

    versions.update_stability(application.id, 1, True)
    versions.update_stability(application.id, 2, True)

    assert versions.get_latest_version(application.id).version_code == 2


def test_delete_version_removes_apk(db_session, versions, application, apk_storage, make_apk):
    versions.upload_version(application.id, make_apk(1))

    versions.delete_version(application.id, 1)

    assert not apk_storage.path_for(application.id, 1).exists()
    assert db_session.query(ApplicationVersion).count() == 0
    with pytest.raises(DomainError) as exc_info:
        versions.get_version(application.id, 1)
    assert exc_info.value.kind == ErrorKind.APPLICATION_VERSION_NOT_FOUND


def test_delete_application_removes_versions_and_apks(db_session, versions, application, apk_storage, make_apk):
    versions.upload_version(application.id, make_apk(1))
    versions.upload_version(application.id, make_apk(2))

    ApplicationService(db_session, apk_storage).delete_application(application.id)

    assert db_session.query(ApplicationVersion).count() == 0
    assert not apk_storage.path_for(application.id, 1).exists()
    assert not apk_storage.path_for(application.id, 2).exists()


def test_bundle_id_is_frozen_once_versions_exist(db_session, versions, application, make_apk):
    versions.upload_version(application.id, make_apk(1))

    with pytest.raises(DomainError) as exc_info:
        ApplicationService(db_session).update_application(application.id, bundle_id="com.example.renamed")

    assert exc_info.value.kind == ErrorKind.INVALID_ARGUMENT


def test_file_storage_layout_and_missing_files(application, apk_storage):
    apk_storage.save(application.id, 7, b"content")

    assert apk_storage.path_for(application.id, 7).relative_to(apk_storage.root).parts == (
        "app", str(application.id), "ver", "7", "base.apk"
    )
    apk_storage.delete(application.id, 7)
    apk_storage.delete(application.id, 7)

    with pytest.raises(DomainError) as exc_info:
        apk_storage.load(application.id, 7)
    assert exc_info.value.kind == ErrorKind.APK_NOT_FOUND


def test_certificate_fingerprint_is_uppercase_sha256():
    fingerprint = certificate_fingerprint(b"certificate-der")

    assert fingerprint == hashlib.sha256(b"certificate-der").hexdigest().upper()
    assert len(fingerprint) == 64


# HTTP role gates

def test_ci_key_uploads_but_cannot_download(client, application, api_key_token, make_apk):
    headers = api_key_token(application, "CI")

    uploaded = _upload(client, application, headers, make_apk(1, "1.0"))
    assert uploaded.status_code == status.HTTP_201_CREATED
    assert uploaded.json()["version_code"] == 1
    assert uploaded.json()["stable"] is False

    download = client.get(f"/api/v1/application/{application.id}/version/1/apk", headers=headers)
    assert download.status_code == status.HTTP_403_FORBIDDEN
    assert download.json()["error"] == ErrorKind.FORBIDDEN_ACCESS.value


def test_consumer_key_downloads_but_cannot_upload(client, application, versions, api_key_token, make_apk):
    versions.upload_version(application.id, make_apk(1, "1.0"))
    headers = api_key_token(application, "CONSUMER")

    download = client.get(f"/api/v1/application/{application.id}/version/1/apk", headers=headers)
    assert download.status_code == status.HTTP_200_OK
    assert download.content == make_apk(1, "1.0")
    assert download.headers["content-type"] == APK_MEDIA_TYPE
    assert 'filename="com.example.field-1.apk"' in download.headers["content-disposition"]

    uploaded = _upload(client, application, headers, make_apk(2))
    assert uploaded.status_code == status.HTTP_403_FORBIDDEN
    assert uploaded.json()["error"] == ErrorKind.FORBIDDEN_ACCESS.value


def test_certificate_mismatch_over_http(client, application, api_key_token, make_apk):
    headers = api_key_token(application, "CI")
    assert _upload(client, application, headers, make_apk(1)).status_code == status.HTTP_201_CREATED

    response = _upload(client, application, headers, make_apk(2, certificate=OTHER_CERTIFICATE))

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == ErrorKind.SIGNING_CERTIFICATE_MISMATCH.value


def test_api_key_is_limited_to_its_application(client, db_session, application, token_engine, make_apk):
    other = ApplicationService(db_session).create_application(name="Other App", bundle_id="com.example.other")
    token, _ = token_engine.issue_api_key_access_token(other.id, "CI")

    response = _upload(client, application, {"Authorization": f"Bearer {token}"}, make_apk(1))

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"] == ErrorKind.FORBIDDEN_ACCESS.value


def test_ci_marks_stable_and_consumer_sees_latest(client, application, api_key_token, make_apk):
    ci_headers = api_key_token(application, "CI")
    consumer_headers = api_key_token(application, "CONSUMER")
    _upload(client, application, ci_headers, make_apk(10, "2.0"))

    missing = client.get(f"/api/v1/application/{application.id}/version/latest", headers=consumer_headers)
    assert missing.status_code == status.HTTP_404_NOT_FOUND

    marked = client.put(
        f"/api/v1/application/{application.id}/version/10", headers=ci_headers, json={"stable": True}
    )
    assert marked.status_code == status.HTTP_200_OK
    assert marked.json()["stable"] is True

    latest = client.get(f"/api/v1/application/{application.id}/version/latest", headers=consumer_headers)
    assert latest.status_code == status.HTTP_200_OK
    assert latest.json()["version_code"] == 10
    assert latest.json()["version_name"] == "2.0"


def test_version_management_is_admin_only(client, admin_user, application, versions, api_key_token, auth_headers, make_apk):
    versions.upload_version(application.id, make_apk(1))
    versions.upload_version(application.id, make_apk(2))
    admin = auth_headers(admin_user)
    ci = api_key_token(application, "CI")
    base = f"/api/v1/application/{application.id}/version"

    assert client.get(base, headers=ci).status_code == status.HTTP_403_FORBIDDEN
    assert client.get(f"{base}/1", headers=ci).status_code == status.HTTP_403_FORBIDDEN
    assert client.delete(f"{base}/1", headers=ci).status_code == status.HTTP_403_FORBIDDEN

    listed = client.get(base, headers=admin)
    assert listed.status_code == status.HTTP_200_OK
    assert listed.json()["total"] == 2

    assert client.get(f"{base}/2", headers=admin).json()["version_code"] == 2
    assert client.delete(f"{base}/1", headers=admin).status_code == status.HTTP_204_NO_CONTENT

    gone = client.get(f"{base}/1", headers=admin)
    assert gone.status_code == status.HTTP_404_NOT_FOUND
    assert gone.json()["error"] == ErrorKind.APPLICATION_VERSION_NOT_FOUND.value


def test_admin_and_ci_user_can_upload(client, admin_user, ci_user, application, auth_headers, make_apk):
    assert _upload(client, application, auth_headers(admin_user), make_apk(1)).status_code == status.HTTP_201_CREATED
    assert _upload(client, application, auth_headers(ci_user), make_apk(2)).status_code == status.HTTP_201_CREATED


def test_oversized_upload_is_rejected(client, admin_user, application, auth_headers, make_apk):
    app.dependency_overrides[get_settings] = lambda: Settings(MAX_APK_SIZE=8)

    response = _upload(client, application, auth_headers(admin_user), make_apk(1))

    assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


def test_upload_requires_authentication(client, application, make_apk):
    response = _upload(client, application, {}, make_apk(1))

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"] == ErrorKind.NOT_AUTHENTICATED.value
