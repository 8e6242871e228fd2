# tests/test_billing_routes.py

from fastapi.testclient import TestClient

from tests.fakes import auth_headers, seed_workspace


def test_plans_catalogue(client: TestClient):
    response = client.get("/plans")

    assert response.status_code == 200
    plans = response.json()["plans"]
    assert [p["id"] for p in plans] == ["home", "studio", "portfolio"]
    assert plans[-1]["limits"]["reports_per_month"] == -1


def test_upgrade_option(client: TestClient):
    response = client.get("/plans/upgrade-option", params={"feature": "ccp-09:contact-upload", "tier": "pro"})

    assert response.status_code == 200
    body = response.json()
    assert body["needs_upgrade"] is True
    assert body["minimum_tier"] == "pro_plus"
    assert body["recommended_plan"]["id"] == "portfolio"


def test_upgrade_option_when_already_entitled(client: TestClient):
    response = client.get("/plans/upgrade-option", params={"feature": "ccp-01:parcel-discovery", "tier": "free"})

    body = response.json()
    assert body["needs_upgrade"] is False
    assert body["recommended_plan"] is None


def test_upgrade_option_unknown_feature(client: TestClient):
    response = client.get("/plans/upgrade-option", params={"feature": "ccp-99:teleport"})

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_billing_hides_stripe_ids_from_non_owners(client: TestClient, fake_db, users):
    workspace_id = seed_workspace(
        fake_db,
        {"owner": users["owner"], "member": users["member"]},
        tier="pro",
        stripe_customer_id="cus_123",
        stripe_subscription_id="sub_123",
    )

    owner = client.get(f"/workspaces/{workspace_id}/billing", headers=auth_headers(users["owner"])).json()["billing"]
    member = client.get(f"/workspaces/{workspace_id}/billing", headers=auth_headers(users["member"])).json()["billing"]

    assert owner["stripe_customer_id"] == "cus_123"
    assert owner["plan"]["id"] == "studio"
    assert "stripe_customer_id" not in member
    assert member["tier"] == "pro"
