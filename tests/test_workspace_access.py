# tests/test_workspace_access.py

"""
Tests for membership verification and workspace-scoped route guards.
"""

import uuid

from fastapi.testclient import TestClient

from core.workspace_access import check_workspace_access, verify_workspace_membership, verify_workspace_role
from dependencies.auth import CurrentUser
from tests.fakes import auth_headers


def _user(user: dict, platform_role: str = "user") -> CurrentUser:
    return CurrentUser(id=user["id"], auth_user_id=user["id"], email=user["email"], platform_role=platform_role)


# -----------------------------------------------------
# Membership verification
# -----------------------------------------------------
def test_member_is_verified_with_role(fake_db, users, workspace_id):
    result = verify_workspace_membership(users["admin"]["id"], workspace_id)
    assert result.ok
    assert result.role.value == "admin"


def test_non_member(fake_db, users, workspace_id):
    result = verify_workspace_membership(users["outsider"]["id"], workspace_id)
    assert not result.ok
    assert result.reason == "NOT_MEMBER"


def test_deleted_workspace(fake_db, users, workspace_id):
    fake_db.rows("workspaces")[0]["deleted_at"] = "2026-01-01T00:00:00+00:00"

    result = verify_workspace_membership(users["owner"]["id"], workspace_id)

    assert result.reason == "DELETED"


def test_suspended_member(fake_db, users, workspace_id):
    for row in fake_db.rows("workspace_members"):
        if row["user_id"] == users["member"]["id"]:
            row["status"] = "suspended"

    assert verify_workspace_membership(users["member"]["id"], workspace_id).reason == "SUSPENDED"


def test_lookup_failure_denies(fake_db, users, workspace_id):
    fake_db.failing_tables.add("workspace_members")

    result = verify_workspace_membership(users["owner"]["id"], workspace_id)

    assert not result.ok
    assert result.reason == "UNKNOWN"


def test_verify_role_hierarchy(fake_db, users, workspace_id):
    assert verify_workspace_role(users["owner"]["id"], workspace_id, "admin")
    assert not verify_workspace_role(users["member"]["id"], workspace_id, "admin")


def test_platform_staff_bypass(fake_db, users, workspace_id):
    staff = _user(users["outsider"], "super_admin")
    result = check_workspace_access(staff, workspace_id)
    assert result.is_member and result.is_admin
    assert result.role.value == "owner"

    support = _user(users["outsider"], "support")
    result = check_workspace_access(support, workspace_id)
    assert result.is_member and not result.is_admin
    assert result.role.value == "viewer"


# -----------------------------------------------------
# Route guards
# -----------------------------------------------------
def test_missing_token_is_401(client: TestClient, workspace_id):
    response = client.get(f"/workspaces/{workspace_id}")

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


def test_invalid_token_is_401(client: TestClient, workspace_id):
    response = client.get(f"/workspaces/{workspace_id}", headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"


def test_malformed_workspace_id_is_400(client: TestClient, users):
    response = client.get("/workspaces/not-a-uuid/members", headers=auth_headers(users["owner"]))

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_unknown_workspace_is_404(client: TestClient, users):
    response = client.get(f"/workspaces/{uuid.uuid4()}", headers=auth_headers(users["owner"]))

    assert response.status_code == 404
    assert response.json()["code"] == "WORKSPACE_NOT_FOUND"


def test_outsider_is_denied(client: TestClient, users, workspace_id):
    response = client.get(f"/workspaces/{workspace_id}/members", headers=auth_headers(users["outsider"]))

    assert response.status_code == 403
    body = response.json()
    assert body == {
        "error": "forbidden",
        "code": "WORKSPACE_ACCESS_DENIED",
        "message": body["message"],
        "status": 403,
    }


def test_membership_lookup_failure_is_403(client: TestClient, fake_db, users, workspace_id):
    fake_db.failing_tables.add("workspace_members")

    response = client.get(f"/workspaces/{workspace_id}", headers=auth_headers(users["owner"]))

    assert response.status_code == 403
    assert response.json()["code"] == "WORKSPACE_ACCESS_DENIED"


def test_member_cannot_do_admin_things(client: TestClient, users, workspace_id):
    response = client.patch(
        f"/workspaces/{workspace_id}",
        json={"name": "Renamed"},
        headers=auth_headers(users["member"]),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "WORKSPACE_ADMIN_REQUIRED"


def test_admin_cannot_delete_workspace(client: TestClient, users, workspace_id):
    response = client.delete(f"/workspaces/{workspace_id}", headers=auth_headers(users["admin"]))

    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "WORKSPACE_INSUFFICIENT_ROLE"
    assert body["required_role"] == "owner"


def test_super_admin_token_acts_as_owner(client: TestClient, fake_db, workspace_id):
    fake_db.auth.add_user("staff-token", str(uuid.uuid4()), "staff@parcelintel.com", platform_role="super_admin")

    response = client.get(f"/workspaces/{workspace_id}", headers={"Authorization": "Bearer staff-token"})

    assert response.status_code == 200
    assert response.json()["workspace"]["role"] == "owner"
