# tests/test_parcels.py

import pytest
from fastapi.testclient import TestClient

from core.utils import filter_search_term
from tests.fakes import auth_headers, seed_workspace


@pytest.fixture
def parcels(fake_db) -> list:
    return fake_db.seed(
        "parcels",
        {"id": "p-1", "apn": "1-4-2-003-015", "address": "123 Kailua Rd, Kailua HI", "zoning": "R-5"},
        {"id": "p-2", "apn": "1-4-2-003-016", "address": "125 Kailua Rd, Kailua HI", "zoning": "R-5"},
        {"id": "p-3", "apn": "2-1-1-001-001", "address": "1 Ala Moana Blvd, Honolulu HI", "zoning": "BMX-3"},
    )


def test_search_by_address(client: TestClient, users, workspace_id, parcels):
    response = client.get(
        f"/workspaces/{workspace_id}/parcels/search",
        params={"q": "kailua"},
        headers=auth_headers(users["viewer"]),
    )

    assert response.status_code == 200
    assert sorted(p["id"] for p in response.json()["parcels"]) == ["p-1", "p-2"]


def test_search_by_apn_with_limit(client: TestClient, users, workspace_id, parcels):
    response = client.get(
        f"/workspaces/{workspace_id}/parcels/search",
        params={"q": "1-4-2", "limit": 1},
        headers=auth_headers(users["viewer"]),
    )

    assert len(response.json()["parcels"]) == 1


def test_search_with_reserved_filter_characters(client: TestClient, fake_db, users, workspace_id, parcels):
    fake_db.seed("parcels", {"id": "p-4", "apn": "3-9-9-000-001", "address": "7 Smith (Trust) Ln, Kaneohe HI"})
    headers = auth_headers(users["viewer"])
    url = f"/workspaces/{workspace_id}/parcels/search"

    found = client.get(url, params={"q": "Smith (Trust)"}, headers=headers)
    quoted = client.get(url, params={"q": '"Kailua Rd, Kailua'}, headers=headers)

    assert found.status_code == 200
    assert [p["id"] for p in found.json()["parcels"]] == ["p-4"]
    assert quoted.status_code == 200
    assert sorted(p["id"] for p in quoted.json()["parcels"]) == ["p-1", "p-2"]


def test_filter_search_term_replaces_reserved_characters():
    assert filter_search_term('  Smith (Trust), "A"\\B ') == "Smith _Trust__ _A__B"
    assert filter_search_term(None) == ""


def test_search_requires_query(client: TestClient, users, workspace_id):
    response = client.get(f"/workspaces/{workspace_id}/parcels/search", headers=auth_headers(users["viewer"]))

    assert response.status_code == 400


def test_get_parcel_records_selection(client: TestClient, fake_db, users, workspace_id, parcels):
    response = client.get(
        f"/workspaces/{workspace_id}/parcels/p-3",
        params={"source": "search"},
        headers=auth_headers(users["member"]),
    )

    assert response.status_code == 200
    assert response.json()["parcel"]["zoning"] == "BMX-3"

    activity = fake_db.rows("workspace_activities")[-1]
    assert activity["activity_type"] == "parcel_selected"
    assert activity["metadata"]["apn"] == "2-1-1-001-001"
    assert activity["metadata"]["source"] == "search"


def test_unknown_parcel(client: TestClient, users, workspace_id):
    response = client.get(f"/workspaces/{workspace_id}/parcels/nope", headers=auth_headers(users["member"]))

    assert response.status_code == 404


def test_saved_parcels_need_pro(client: TestClient, users, workspace_id):
    response = client.get(f"/workspaces/{workspace_id}/parcels/saved", headers=auth_headers(users["member"]))

    assert response.status_code == 403
    assert response.json()["code"] == "TIER_INSUFFICIENT"
    assert response.json()["upgrade_plan"] == "studio"


def test_save_list_and_unsave(client: TestClient, fake_db, users, parcels):
    workspace_id = seed_workspace(fake_db, {"owner": users["owner"], "member": users["member"]}, tier="pro")
    headers = auth_headers(users["member"])
    base = f"/workspaces/{workspace_id}/parcels/saved"

    saved = client.post(base, json={"parcel_id": "p-1", "notes": "corner lot"}, headers=headers)
    assert saved.status_code == 201
    assert saved.json()["saved_parcel"]["saved_by"] == users["member"]["id"]

    again = client.post(base, json={"parcel_id": "p-1"}, headers=headers)
    assert again.status_code == 409

    missing = client.post(base, json={"parcel_id": "nope"}, headers=headers)
    assert missing.status_code == 404

    listed = client.get(base, headers=headers).json()["saved_parcels"]
    assert [s["parcel_id"] for s in listed] == ["p-1"]

    assert client.delete(f"{base}/p-1", headers=headers).status_code == 200
    assert client.delete(f"{base}/p-1", headers=headers).status_code == 404
