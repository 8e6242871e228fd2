# tests/test_audit.py

from fastapi.testclient import TestClient

from tests.fakes import auth_headers


def test_blocked_access_is_logged(client: TestClient, fake_db, users, workspace_id):
    response = client.post(
        "/audit/blocked-access",
        json={"feature": "ccp-08:saved-parcels", "tier": "free", "workspace_id": workspace_id},
        headers={**auth_headers(users["member"]), "User-Agent": "dashboard/1.0", "X-Forwarded-For": "203.0.113.9"},
    )

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}

    row = fake_db.rows("blocked_access_logs")[0]
    assert row["user_id"] == users["member"]["id"]
    assert row["ip_address"] == "203.0.113.9"
    assert row["user_agent"] == "dashboard/1.0"


def test_blocked_access_anonymous(client: TestClient, fake_db):
    response = client.post("/audit/blocked-access", json={"feature": "ccp-06:branded-reports"})

    assert response.status_code == 200
    assert fake_db.rows("blocked_access_logs")[0]["user_id"] is None


def test_blocked_access_rate_limited_still_ok(client: TestClient, fake_db):
    headers = {"X-Forwarded-For": "198.51.100.7"}
    for _ in range(35):
        response = client.post("/audit/blocked-access", json={"feature": "ccp-06:branded-reports"}, headers=headers)
        assert response.json() == {"status": "ok"}

    assert len(fake_db.rows("blocked_access_logs")) == 30


def test_blocked_access_storage_failure_still_ok(client: TestClient, fake_db):
    fake_db.failing_tables.add("blocked_access_logs")

    response = client.post("/audit/blocked-access", json={"feature": "ccp-06:branded-reports"})

    assert response.json() == {"status": "ok"}


def test_audit_logs_admin_only(client: TestClient, users, workspace_id):
    client.patch(f"/workspaces/{workspace_id}", json={"name": "Renamed"}, headers=auth_headers(users["owner"]))

    member = client.get(f"/workspaces/{workspace_id}/audit-logs", headers=auth_headers(users["member"]))
    assert member.status_code == 403

    admin = client.get(f"/workspaces/{workspace_id}/audit-logs", headers=auth_headers(users["admin"]))
    assert admin.status_code == 200
    body = admin.json()
    assert [log["action"] for log in body["audit_logs"]] == ["workspace.updated"]
    assert body["pagination"]["total"] == 1


def test_audit_logs_filter_by_action(client: TestClient, users, workspace_id):
    headers = auth_headers(users["owner"])
    client.patch(f"/workspaces/{workspace_id}", json={"name": "Renamed"}, headers=headers)
    client.patch(
        f"/workspaces/{workspace_id}/members/{users['viewer']['id']}",
        json={"role": "member"},
        headers=headers,
    )

    response = client.get(
        f"/workspaces/{workspace_id}/audit-logs",
        params={"action": "workspace.member_role_changed"},
        headers=headers,
    )

    assert [log["action"] for log in response.json()["audit_logs"]] == ["workspace.member_role_changed"]


def test_audit_summary(client: TestClient, users, workspace_id):
    client.post(
        f"/workspaces/{workspace_id}/reports",
        json={
            "parcel_context": {"parcel_id": "p", "lat": 0, "lng": 0, "intent": "buy", "source": "search"},
            "branded": True,
        },
        headers=auth_headers(users["admin"]),
    )

    response = client.get(f"/workspaces/{workspace_id}/audit-logs/summary", headers=auth_headers(users["admin"]))

    assert response.status_code == 200
    summary = response.json()
    assert summary["denied_count"] == 1
    assert summary["by_action"] == {"workspace.entitlement_denied": 1}
    assert summary["days"] == 30


def test_activity_feed(client: TestClient, users, workspace_id):
    client.patch(f"/workspaces/{workspace_id}", json={"name": "Renamed"}, headers=auth_headers(users["owner"]))

    response = client.get(f"/workspaces/{workspace_id}/activities", headers=auth_headers(users["viewer"]))

    assert response.status_code == 200
    activity = response.json()["activities"][0]
    assert activity["activity_type"] == "update_workspace"
    assert activity["metadata"] == {"updated_fields": '["name"]'}
