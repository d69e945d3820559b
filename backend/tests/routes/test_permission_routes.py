"""
Permission Routes Integration Tests
===================================

Integration tests for /admin/permissions.
"""

import pytest
from fastapi.testclient import TestClient


pytestmark = [pytest.mark.integration, pytest.mark.rbac]


def _permission_id(client: TestClient, headers: dict, name: str) -> int:
    listing = client.get("/admin/permissions", params={"search": name}, headers=headers).json()
    return next(p["id"] for p in listing["permissions"] if p["name"] == name)


class TestListPermissions:

    def test_admin_lists_catalog(self, client: TestClient, admin_headers: dict):
        # Act
        response = client.get("/admin/permissions", headers=admin_headers)

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == len(data["permissions"])
        assert "roles" in data["groups"]

    def test_filter_by_group(self, client: TestClient, admin_headers: dict):
        data = client.get("/admin/permissions", params={"group": "data"}, headers=admin_headers).json()
        assert {p["name"] for p in data["permissions"]} == {"data.view", "data.import", "data.export", "data.manage"}

    def test_viewer_forbidden(self, client: TestClient, viewer_headers: dict):
        # Act
        response = client.get("/admin/permissions", headers=viewer_headers)

        # Assert
        assert response.status_code == 403
        body = response.json()
        assert body["reason"] == "missing_permission"
        assert body["details"]["permission"] == "permissions.view"

    def test_anonymous_unauthenticated(self, client: TestClient):
        assert client.get("/admin/permissions").status_code == 401


class TestPermissionLifecycle:

    def test_create_update_delete(self, client: TestClient, super_admin_headers: dict):
        # Act
        created = client.post(
            "/admin/permissions",
            json={"name": "reports.view", "display_name": "View Reports", "group": "reports"},
            headers=super_admin_headers,
        )
        permission_id = created.json()["id"]
        updated = client.put(
            f"/admin/permissions/{permission_id}",
            json={"display_name": "Read Reports"},
            headers=super_admin_headers,
        )
        deleted = client.delete(f"/admin/permissions/{permission_id}", headers=super_admin_headers)
        missing = client.get(f"/admin/permissions/{permission_id}", headers=super_admin_headers)

        # Assert
        assert created.status_code == 201
        assert updated.json()["display_name"] == "Read Reports"
        assert deleted.status_code == 204
        assert missing.status_code == 404

    def test_duplicate_name_conflict(self, client: TestClient, super_admin_headers: dict):
        # Act
        response = client.post(
            "/admin/permissions",
            json={"name": "users.view", "display_name": "Again"},
            headers=super_admin_headers,
        )

        # Assert
        assert response.status_code == 409
        assert response.json()["reason"] == "duplicate_name"

    def test_bad_name_rejected(self, client: TestClient, super_admin_headers: dict):
        response = client.post(
            "/admin/permissions",
            json={"name": "Not A Name", "display_name": "Bad"},
            headers=super_admin_headers,
        )
        assert response.status_code == 422

    def test_delete_in_use_conflict(self, client: TestClient, super_admin_headers: dict):
        # Arrange
        permission_id = _permission_id(client, super_admin_headers, "analytics.view")

        # Act
        response = client.delete(f"/admin/permissions/{permission_id}", headers=super_admin_headers)

        # Assert
        assert response.status_code == 409
        assert response.json()["reason"] == "permission_in_use"

    def test_rename_in_use_conflict(self, client: TestClient, super_admin_headers: dict):
        # Arrange
        permission_id = _permission_id(client, super_admin_headers, "analytics.view")

        # Act
        response = client.put(
            f"/admin/permissions/{permission_id}",
            json={"name": "analytics.read"},
            headers=super_admin_headers,
        )

        # Assert
        assert response.status_code == 409
