"""
User Role Routes Integration Tests
==================================

Integration tests for /admin/users: role assignment, sync, invitations
and account unlock.
"""

import pytest
from fastapi.testclient import TestClient

from portal.core.config import settings
from portal.models.user import User


pytestmark = [pytest.mark.integration, pytest.mark.rbac]

TEST_PASSWORD = "TestPassword123!"


class TestAssignRole:

    def test_admin_assigns_standard_role(
        self, client: TestClient, admin_headers: dict, target_user: User, roles: dict
    ):
        # Act
        response = client.post(
            f"/admin/users/{target_user.id}/roles",
            json={"role_id": roles["analyst"].id},
            headers=admin_headers,
        )

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert [r["name"] for r in data["roles"]] == ["analyst", "user"]
        assert "analytics.export" in data["permissions"]

    @pytest.mark.parametrize("role_name", ["super_admin", "admin"])
    def test_admin_cannot_assign_protected_role(
        self, client: TestClient, admin_headers: dict, target_user: User, roles: dict, role_name
    ):
        # Act
        response = client.post(
            f"/admin/users/{target_user.id}/roles",
            json={"role_id": roles[role_name].id},
            headers=admin_headers,
        )

        # Assert
        assert response.status_code == 403
        body = response.json()
        assert body["reason"] == "tier_violation"
        assert body["details"]["role"] == role_name
        assert [r.name for r in target_user.roles] == ["user"]

    def test_super_admin_assigns_admin(
        self, client: TestClient, super_admin_headers: dict, target_user: User, roles: dict
    ):
        response = client.post(
            f"/admin/users/{target_user.id}/roles",
            json={"role_id": roles["admin"].id},
            headers=super_admin_headers,
        )
        assert response.status_code == 200

    def test_already_assigned(self, client: TestClient, admin_headers: dict, target_user: User, roles: dict):
        # Act
        response = client.post(
            f"/admin/users/{target_user.id}/roles",
            json={"role_id": roles["user"].id},
            headers=admin_headers,
        )

        # Assert
        assert response.status_code == 400
        assert response.json()["reason"] == "already_assigned"

    def test_manager_cannot_assign(self, client: TestClient, manager_headers: dict, target_user: User, roles: dict):
        response = client.post(
            f"/admin/users/{target_user.id}/roles",
            json={"role_id": roles["viewer"].id},
            headers=manager_headers,
        )
        assert response.status_code == 403
        assert response.json()["reason"] == "tier_violation"

    def test_unknown_user(self, client: TestClient, admin_headers: dict, roles: dict):
        response = client.post("/admin/users/98765/roles", json={"role_id": roles["viewer"].id}, headers=admin_headers)
        assert response.status_code == 404


class TestRemoveAndSync:

    def test_remove_role(self, client: TestClient, admin_headers: dict, target_user: User, roles: dict):
        # Act
        response = client.delete(f"/admin/users/{target_user.id}/roles/{roles['user'].id}", headers=admin_headers)

        # Assert
        assert response.status_code == 200
        assert response.json()["roles"] == []
        assert response.json()["permissions"] == []

    def test_remove_unheld(self, client: TestClient, admin_headers: dict, target_user: User, roles: dict):
        response = client.delete(f"/admin/users/{target_user.id}/roles/{roles['viewer'].id}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["reason"] == "not_assigned"

    def test_admin_cannot_strip_super_admin(
        self, client: TestClient, admin_headers: dict, super_admin_user: User, roles: dict
    ):
        # Act
        response = client.delete(
            f"/admin/users/{super_admin_user.id}/roles/{roles['super_admin'].id}",
            headers=admin_headers,
        )

        # Assert
        assert response.status_code == 403
        assert [r.name for r in super_admin_user.roles] == ["super_admin"]

    def test_sync_twice_is_stable(self, client: TestClient, admin_headers: dict, target_user: User, roles: dict):
        # Arrange
        body = {"role_ids": [roles["viewer"].id, roles["analyst"].id, roles["viewer"].id]}

        # Act
        first = client.put(f"/admin/users/{target_user.id}/roles", json=body, headers=admin_headers)
        second = client.put(f"/admin/users/{target_user.id}/roles", json=body, headers=admin_headers)

        # Assert
        assert first.status_code == second.status_code == 200
        assert first.json() == second.json()
        assert [r["name"] for r in second.json()["roles"]] == ["analyst", "viewer"]

    def test_sync_adding_protected_role_refused(
        self, client: TestClient, admin_headers: dict, target_user: User, roles: dict
    ):
        # Act
        response = client.put(
            f"/admin/users/{target_user.id}/roles",
            json={"role_ids": [roles["user"].id, roles["admin"].id]},
            headers=admin_headers,
        )

        # Assert
        assert response.status_code == 403
        assert [r.name for r in target_user.roles] == ["user"]

    def test_get_user_roles(self, client: TestClient, admin_headers: dict, manager_user: User):
        data = client.get(f"/admin/users/{manager_user.id}/roles", headers=admin_headers).json()
        assert data["user_id"] == manager_user.id
        assert [r["name"] for r in data["roles"]] == ["manager"]

    def test_user_reads_own_roles(self, client: TestClient, viewer_headers: dict, viewer_user: User):
        # Act
        response = client.get(f"/admin/users/{viewer_user.id}/roles", headers=viewer_headers)

        # Assert
        assert response.status_code == 200
        assert [r["name"] for r in response.json()["roles"]] == ["viewer"]

    def test_other_users_roles_forbidden_without_permission(
        self, client: TestClient, viewer_headers: dict, manager_user: User
    ):
        response = client.get(f"/admin/users/{manager_user.id}/roles", headers=viewer_headers)
        assert response.status_code == 403
        assert response.json()["details"] == {"permission": "user_roles.view"}


class TestInvite:

    def test_invite_then_first_login(self, client: TestClient, admin_headers: dict, roles: dict):
        """An invited user logs in restricted to changing the temporary password."""
        # Act
        invited = client.post(
            "/admin/users/invite",
            json={
                "name": "New Analyst",
                "email": "new.analyst@example.com",
                "temporary_password": "TempPassword123!",
                "role_ids": [roles["analyst"].id],
            },
            headers=admin_headers,
        )
        login = client.post(
            "/auth/login",
            json={"email": "new.analyst@example.com", "password": "TempPassword123!"},
        )

        # Assert
        assert invited.status_code == 201
        assert invited.json()["temporary_password_used"] is True
        assert invited.json()["roles"] == ["analyst"]
        assert login.json()["requires_password_change"] is True

    def test_invite_weak_password(self, client: TestClient, admin_headers: dict):
        response = client.post(
            "/admin/users/invite",
            json={"name": "X", "email": "x@example.com", "temporary_password": "password"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_invite_existing_email(self, client: TestClient, admin_headers: dict, viewer_user: User):
        response = client.post(
            "/admin/users/invite",
            json={"name": "X", "email": viewer_user.email, "temporary_password": "TempPassword123!"},
            headers=admin_headers,
        )
        assert response.status_code == 409


class TestUnlock:
    """Lockout recovery through POST /admin/users/{id}/unlock."""

    def test_locked_out_user_can_log_in_after_unlock(
        self, client: TestClient, admin_headers: dict, viewer_user: User, monkeypatch
    ):
        # Arrange
        monkeypatch.setattr(settings, "MAX_LOGIN_ATTEMPTS", 2)
        for _ in range(2):
            client.post("/auth/login", json={"email": viewer_user.email, "password": "WrongPassword123!"})
        locked = client.post("/auth/login", json={"email": viewer_user.email, "password": TEST_PASSWORD})
        assert locked.status_code == 403
        assert locked.json()["reason"] == "account_locked"

        # Act
        response = client.post(f"/admin/users/{viewer_user.id}/unlock", headers=admin_headers)

        # Assert
        assert response.status_code == 200
        assert response.json()["is_locked"] is False
        login = client.post("/auth/login", json={"email": viewer_user.email, "password": TEST_PASSWORD})
        assert login.status_code == 200

    def test_unlock_requires_users_manage(self, client: TestClient, manager_headers: dict, make_user):
        # Arrange
        user = make_user("locked@example.com", ["viewer"], is_locked=True)

        # Act
        response = client.post(f"/admin/users/{user.id}/unlock", headers=manager_headers)

        # Assert
        assert response.status_code == 403
        assert response.json()["reason"] == "missing_permission"

    def test_unlock_unknown_user(self, client: TestClient, super_admin_headers: dict):
        response = client.post("/admin/users/424242/unlock", headers=super_admin_headers)
        assert response.status_code == 404
