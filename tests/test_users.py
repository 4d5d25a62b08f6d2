"""
Tests for user management.
"""
import uuid

import pytest
from fastapi import status

from apkdepot.core.errors import DomainError, ErrorKind
from apkdepot.core.roles import UserRole
from apkdepot.core.security import verify_password
from apkdepot.models.user import User
from apkdepot.services.user_service import UserService


def test_create_admin_user(db_session):
    user = UserService(db_session).create_user("bob", "Password123!", UserRole.ADMIN)

    assert user.is_active is True
    assert user.token_version == 0
    assert verify_password("Password123!", user.password_hash)


def test_ci_user_never_stores_password(db_session):
    user = UserService(db_session).create_user("builder", "Password123!", UserRole.CI)

    assert user.password_hash is None


def test_consumer_user_cannot_be_created(db_session):
    with pytest.raises(DomainError) as exc_info:
        UserService(db_session).create_user("reader", None, UserRole.CONSUMER)

    assert exc_info.value.kind == ErrorKind.INVALID_ROLE


def test_login_format_is_enforced(db_session):
    with pytest.raises(DomainError) as exc_info:
        UserService(db_session).create_user("no spaces", "Password123!", UserRole.ADMIN)

    assert exc_info.value.kind == ErrorKind.INVALID_LOGIN_FORMAT


def test_login_unique_ignoring_case(db_session, admin_user):
    with pytest.raises(DomainError) as exc_info:
        UserService(db_session).create_user("ALICE", "Password123!", UserRole.ADMIN)

    assert exc_info.value.kind == ErrorKind.LOGIN_ALREADY_EXISTS


def test_admin_needs_strong_password(db_session):
    with pytest.raises(DomainError) as exc_info:
        UserService(db_session).create_user("bob", "short", UserRole.ADMIN)

    assert exc_info.value.kind == ErrorKind.INVALID_PASSWORD


def test_password_update_bumps_version_by_one(db_session, admin_user):
    service = UserService(db_session)

    service.update_password(admin_user.id, "BrandNew1234")
    user = service.update_password(admin_user.id, "BrandNew5678")

    assert user.token_version == 2
    assert verify_password("BrandNew5678", user.password_hash)


def test_password_update_rejected_for_ci_user(db_session, ci_user):
    with pytest.raises(DomainError) as exc_info:
        UserService(db_session).update_password(ci_user.id, "BrandNew1234")

    assert exc_info.value.kind == ErrorKind.INVALID_USER_TYPE


def test_password_update_for_missing_user(db_session):
    with pytest.raises(DomainError) as exc_info:
        UserService(db_session).update_password(uuid.uuid4(), "BrandNew1234")

    assert exc_info.value.kind == ErrorKind.USER_NOT_FOUND


def test_reapplying_active_status_is_a_no_op(db_session, admin_user, super_admin, settings):
    user = UserService(db_session).update_active_status(
        admin_user.id, True, super_admin.id, settings.SUPER_ADMIN_LOGIN
    )

    assert user.token_version == 0


def test_deactivate_bumps_version(db_session, admin_user, super_admin, settings):
    user = UserService(db_session).update_active_status(
        admin_user.id, False, super_admin.id, settings.SUPER_ADMIN_LOGIN
    )

    assert user.is_active is False
    assert user.token_version == 1


def test_nobody_can_deactivate_super_admin(client, db_session, super_admin, admin_user, auth_headers):
    """Both another admin and the super admin itself are refused, and nothing is stored."""
    for actor in (admin_user, super_admin):
        response = client.put(
            f"/api/v1/user/{super_admin.id}/activate",
            headers=auth_headers(actor),
            json={"set_active": False},
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"] == ErrorKind.SUPER_ADMIN_PROTECTION.value

    db_session.expire_all()
    stored = db_session.get(User, super_admin.id)
    assert stored.is_active is True
    assert stored.token_version == 0


def test_admin_cannot_deactivate_itself(client, admin_user, super_admin, auth_headers):
    response = client.put(
        f"/api/v1/user/{admin_user.id}/activate",
        headers=auth_headers(admin_user),
        json={"set_active": False},
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"] == ErrorKind.SELF_MODIFICATION_NOT_ALLOWED.value


def test_admin_deactivates_other_user(client, admin_user, ci_user, super_admin, auth_headers):
    response = client.put(
        f"/api/v1/user/{ci_user.id}/activate",
        headers=auth_headers(admin_user),
        json={"set_active": False},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["is_active"] is False


def test_create_user_over_http(client, admin_user, auth_headers):
    response = client.post(
        "/api/v1/user",
        headers=auth_headers(admin_user),
        json={"login": "builder", "role": "CI"},
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["login"] == "builder"
    assert data["role"] == "CI"
    assert "password_hash" not in data


def test_create_user_with_unknown_role(client, admin_user, auth_headers):
    response = client.post(
        "/api/v1/user",
        headers=auth_headers(admin_user),
        json={"login": "builder", "role": "ROOT"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == ErrorKind.INVALID_ROLE.value


def test_list_users_with_filters(client, admin_user, ci_user, auth_headers):
    headers = auth_headers(admin_user)

    everyone = client.get("/api/v1/user", headers=headers).json()
    ci_only = client.get("/api/v1/user", headers=headers, params={"role": "CI"}).json()

    assert everyone["total"] == 2
    assert ci_only["total"] == 1
    assert ci_only["items"][0]["login"] == "ci-runner"


def test_list_users_page_size_is_capped(client, admin_user, auth_headers):
    response = client.get("/api/v1/user", headers=auth_headers(admin_user), params={"size": 101})

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_ci_user_reads_only_itself(client, admin_user, ci_user, auth_headers):
    headers = auth_headers(ci_user)

    own = client.get(f"/api/v1/user/{ci_user.id}", headers=headers)
    other = client.get(f"/api/v1/user/{admin_user.id}", headers=headers)

    assert own.status_code == status.HTTP_200_OK
    assert other.status_code == status.HTTP_403_FORBIDDEN
    assert other.json()["detail"] == "You can only access your own user data"


def test_get_missing_user(client, admin_user, auth_headers):
    response = client.get(f"/api/v1/user/{uuid.uuid4()}", headers=auth_headers(admin_user))

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"] == ErrorKind.USER_NOT_FOUND.value


def test_admin_changes_own_password(client, admin_user, auth_headers):
    response = client.put(
        f"/api/v1/user/{admin_user.id}/password",
        headers=auth_headers(admin_user),
        json={"new_password": "BrandNew1234"},
    )

    assert response.status_code == status.HTTP_200_OK


def test_admin_cannot_change_other_password(client, db_session, admin_user, super_admin, auth_headers):
    other = UserService(db_session).create_user("bob", "Password123!", UserRole.ADMIN)

    response = client.put(
        f"/api/v1/user/{other.id}/password",
        headers=auth_headers(admin_user),
        json={"new_password": "BrandNew1234"},
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["detail"] == "You can only update your own password"


def test_super_admin_changes_any_password(client, admin_user, super_admin, auth_headers):
    response = client.put(
        f"/api/v1/user/{admin_user.id}/password",
        headers=auth_headers(super_admin),
        json={"new_password": "BrandNew1234"},
    )

    assert response.status_code == status.HTTP_200_OK


def test_super_admin_cannot_set_ci_password(client, ci_user, super_admin, auth_headers):
    response = client.put(
        f"/api/v1/user/{ci_user.id}/password",
        headers=auth_headers(super_admin),
        json={"new_password": "BrandNew1234"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == ErrorKind.INVALID_USER_TYPE.value
