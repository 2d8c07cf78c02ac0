from core.permissions import MODERATOR_PERMISSIONS, AdminPermission, AdminRole


def test_my_permissions(client, auth_headers):
    response = client.get("/api/admin/permissions/me", headers=auth_headers("MODERATOR", user_id="mod-1"))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["admin_id"] == "mod-1"
    assert data["role"] == "MODERATOR"
    assert data["permissions"] == sorted(p.value for p in MODERATOR_PERMISSIONS)
    assert data["role_permissions"] == data["permissions"]
    assert data["custom_permissions"] == []
    assert "USER_MANAGEMENT" in data["groups"]


def test_my_permissions_for_unknown_role(client, auth_headers):
    data = client.get("/api/admin/permissions/me", headers=auth_headers("WIZARD")).json()["data"]

    assert data["permissions"] == []
    assert data["groups"] == []


def test_role_matrix_for_security_admin(client, auth_headers):
    response = client.get("/api/admin/permissions/roles", headers=auth_headers("SECURITY_ADMIN"))

    assert response.status_code == 200
    data = response.json()["data"]
    assert [entry["role"] for entry in data["roles"]] == [role.value for role in AdminRole]
    assert len(data["permissions"]) == len(AdminPermission)

    super_admin = data["roles"][0]
    assert super_admin["permissions"] == sorted(p.value for p in AdminPermission)
    assert "manage_categories" in data["groups"]["PRODUCT_MANAGEMENT"]


def test_role_matrix_is_forbidden_without_role_management(client, auth_headers):
    response = client.get("/api/admin/permissions/roles", headers=auth_headers("MODERATOR"))

    assert response.status_code == 403
    assert sorted(response.json()["details"]["required_permissions"]) == ["manage_permissions", "manage_roles"]


def test_audit_log_listing(client, auth_headers):
    client.post("/api/admin/categories", json={"name": "Electronics"}, headers=auth_headers())
    client.post("/api/admin/categories", json={"name": "Books"}, headers=auth_headers())

    response = client.get(
        "/api/admin/audit-logs",
        params={"action": "CREATE_CATEGORY", "limit": 1},
        headers=auth_headers("SECURITY_ADMIN")
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["entries"]) == 1
    assert data["entries"][0]["resource_type"] == "CATEGORY"
    assert data["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}


def test_audit_log_listing_requires_permission(client, auth_headers):
    response = client.get("/api/admin/audit-logs", headers=auth_headers("CONTENT_ADMIN"))
    assert response.status_code == 403


def test_health(client):
    assert client.get("/api/health").json()["status"] == "ok"
