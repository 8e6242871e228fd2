# tests/test_health.py

from fastapi.testclient import TestClient


def test_app_health(client: TestClient):
    response = client.get("/health/app")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["entitlement_cache"]["ttl_seconds"] == 300


def test_db_health(client: TestClient, fake_db):
    response = client.get("/health/db")

    assert response.json()["status"] == "ok"
    assert set(response.json()["details"]["tables"]) == {"workspaces", "workspace_members", "workspace_billing", "reports"}


def test_db_health_degraded(client: TestClient, fake_db):
    fake_db.failing_tables.add("reports")

    response = client.get("/health/db")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["details"]["tables"]["reports"]["status"] == "error"


def test_unknown_route_uses_error_shape(client: TestClient):
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "not_found", "code": "NOT_FOUND", "message": "Not Found", "status": 404}


def test_startup_hook_runs_and_app_serves_requests(app, fake_db):
    with TestClient(app) as started:
        assert started.get("/health/app").status_code == 200
        assert started.get("/plans").status_code == 200
        assert started.get("/share-links/unknown-token").status_code == 404
