# tests/test_share_links.py

"""
Tests for share link creation, public resolution and revocation.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

import services.share_links as share_links_service
from services.share_links import has_permission, record_expired_links
from tests.fakes import auth_headers, seed_workspace


@pytest.fixture
def report_id(fake_db, workspace_id) -> str:
    report = fake_db.seed("reports", {
        "workspace_id": workspace_id,
        "name": "Lot 15 ADU",
        "status": "draft",
        "version": "rpt-0.1",
        "sections": [],
        "created_at": datetime.now(timezone.utc).isoformat(),
    })[0]
    return report["id"]


def _create_link(client, workspace_id, report_id, user, **body):
    return client.post(
        f"/workspaces/{workspace_id}/reports/{report_id}/share-links",
        json=body,
        headers=auth_headers(user),
    )


def _token(client, workspace_id, report_id, user, **body) -> str:
    response = _create_link(client, workspace_id, report_id, user, **body)
    assert response.status_code == 201, response.json()
    return response.json()["share_link"]["token"]


# -----------------------------------------------------
# Create
# -----------------------------------------------------
def test_create_returns_token_once(client: TestClient, fake_db, users, workspace_id, report_id):
    response = _create_link(client, workspace_id, report_id, users["member"])

    assert response.status_code == 201
    link = response.json()["share_link"]
    assert len(link["token"]) >= 43
    assert link["url"].endswith(f"/share/{link['token']}")
    assert link["permissions"] == ["view"]
    assert link["access_role"] == "viewer"
    assert link["has_password"] is False
    assert "password_hash" not in link

    listed = client.get(f"/workspaces/{workspace_id}/share-links", headers=auth_headers(users["viewer"]))
    assert listed.status_code == 200
    assert "token" not in listed.json()["share_links"][0]

    events = [e["event_type"] for e in fake_db.rows("share_link_events")]
    assert events == ["created"]

    activity = fake_db.rows("workspace_activities")[-1]
    assert activity["metadata"]["token_prefix"] == link["token"][:8]


def test_password_is_hashed(client: TestClient, fake_db, users, workspace_id, report_id):
    response = _create_link(client, workspace_id, report_id, users["member"], password="hunter22")

    assert response.json()["share_link"]["has_password"] is True
    stored = fake_db.rows("share_links")[0]["password_hash"]
    assert stored.startswith("$2")
    assert "hunter22" not in stored


def test_viewer_role_cannot_create(client: TestClient, users, workspace_id, report_id):
    response = _create_link(client, workspace_id, report_id, users["viewer"])

    assert response.status_code == 403
    assert response.json()["code"] == "WORKSPACE_INSUFFICIENT_ROLE"


def test_unknown_report(client: TestClient, users, workspace_id):
    response = _create_link(client, workspace_id, "00000000-0000-0000-0000-000000000000", users["member"])

    assert response.status_code == 404


def test_commenter_link_needs_collaboration(client: TestClient, users, workspace_id, report_id):
    response = _create_link(client, workspace_id, report_id, users["member"], access_role="commenter")

    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "TIER_INSUFFICIENT"
    assert body["feature"] == "ccp-10:collaboration"


def test_editor_link_on_pro_plus(client: TestClient, fake_db, users):
    workspace_id = seed_workspace(fake_db, {"owner": users["owner"]}, tier="pro_plus")
    report = fake_db.seed("reports", {"workspace_id": workspace_id, "name": "R"})[0]

    response = _create_link(client, workspace_id, report["id"], users["owner"], access_role="editor")

    assert response.status_code == 201
    assert response.json()["share_link"]["permissions"] == ["view", "comment", "download"]


# -----------------------------------------------------
# Resolve
# -----------------------------------------------------
def test_resolve_counts_view(client: TestClient, fake_db, users, workspace_id, report_id):
    token = _token(client, workspace_id, report_id, users["member"])

    response = client.get(f"/share-links/{token}")

    assert response.status_code == 200
    body = response.json()
    assert body["report"]["id"] == report_id
    assert body["share_link"]["permissions"] == ["view"]

    link = fake_db.rows("share_links")[0]
    assert link["view_count"] == 1
    assert link["first_viewed_at"] is not None
    assert fake_db.rows("share_link_events")[-1]["event_type"] == "viewed"


def test_unknown_token(client: TestClient):
    assert client.get("/share-links/does-not-exist").status_code == 404


def test_revoked_link(client: TestClient, fake_db, users, workspace_id, report_id):
    response = _create_link(client, workspace_id, report_id, users["member"])
    link = response.json()["share_link"]

    revoked = client.delete(
        f"/workspaces/{workspace_id}/share-links/{link['id']}",
        headers=auth_headers(users["member"]),
    )
    assert revoked.status_code == 200
    assert revoked.json()["share_link"]["revoked_at"] is not None

    opened = client.get(f"/share-links/{link['token']}")
    assert opened.status_code == 410
    assert opened.json()["code"] == "revoked"

    denied = fake_db.rows("share_link_events")[-1]
    assert (denied["event_type"], denied["reason"]) == ("access_denied", "revoked")


def test_expired_link(client: TestClient, fake_db, workspace_id, report_id):
    fake_db.seed("share_links", {
        "workspace_id": workspace_id,
        "report_id": report_id,
        "token": "expired-token",
        "access_role": "viewer",
        "expires_at": (datetime.now(timezone.utc) - timedelta(minutes=1)).isoformat(),
        "view_count": 0,
    })

    response = client.get("/share-links/expired-token")

    assert response.status_code == 410
    assert response.json()["code"] == "expired"


def test_max_views(client: TestClient, users, workspace_id, report_id):
    token = _token(client, workspace_id, report_id, users["member"], max_views=1)

    assert client.get(f"/share-links/{token}").status_code == 200
    second = client.get(f"/share-links/{token}")
    assert second.status_code == 410
    assert second.json()["code"] == "max_views_reached"


def _bump_views_after_read(monkeypatch, fake_db, view_count):
    """Another request counts views between this request's read and its write."""
    original = share_links_service.get_share_link_by_token

    def stale_read(token):
        link = original(token)
        for row in fake_db.rows("share_links"):
            if row["id"] == link["id"]:
                row["view_count"] = view_count
        return link

    monkeypatch.setattr(share_links_service, "get_share_link_by_token", stale_read)


def test_concurrent_view_takes_last_slot(client: TestClient, fake_db, users, workspace_id, report_id, monkeypatch):
    token = _token(client, workspace_id, report_id, users["member"], max_views=1)
    _bump_views_after_read(monkeypatch, fake_db, 1)

    response = client.get(f"/share-links/{token}")

    assert response.status_code == 410
    assert response.json()["code"] == "max_views_reached"
    assert fake_db.rows("share_links")[0]["view_count"] == 1


def test_concurrent_view_is_counted_on_top(client: TestClient, fake_db, users, workspace_id, report_id, monkeypatch):
    token = _token(client, workspace_id, report_id, users["member"], max_views=5)
    _bump_views_after_read(monkeypatch, fake_db, 3)

    assert client.get(f"/share-links/{token}").status_code == 200
    assert fake_db.rows("share_links")[0]["view_count"] == 4


def test_requires_auth(client: TestClient, users, workspace_id, report_id):
    token = _token(client, workspace_id, report_id, users["member"], requires_auth=True)

    anonymous = client.get(f"/share-links/{token}")
    assert anonymous.status_code == 401
    assert anonymous.json()["code"] == "auth_required"

    signed_in = client.get(f"/share-links/{token}", headers=auth_headers(users["outsider"]))
    assert signed_in.status_code == 200


def test_password_protected(client: TestClient, users, workspace_id, report_id):
    token = _token(client, workspace_id, report_id, users["member"], password="hunter22")

    missing = client.get(f"/share-links/{token}")
    assert missing.status_code == 401
    assert missing.json()["code"] == "password_required"

    wrong = client.get(f"/share-links/{token}", headers={"X-Share-Password": "nope"})
    assert wrong.status_code == 403
    assert wrong.json()["code"] == "invalid_password"

    right = client.get(f"/share-links/{token}", headers={"X-Share-Password": "hunter22"})
    assert right.status_code == 200


def test_allowed_domains(client: TestClient, users, workspace_id, report_id):
    token = _token(client, workspace_id, report_id, users["member"], allowed_domains=["Example.org"])

    no_referer = client.get(f"/share-links/{token}")
    assert no_referer.status_code == 403
    assert no_referer.json()["code"] == "domain_denied"

    other = client.get(f"/share-links/{token}", headers={"Referer": "https://evil.test/page"})
    assert other.status_code == 403

    subdomain = client.get(f"/share-links/{token}", headers={"Referer": "https://portal.example.org/deals"})
    assert subdomain.status_code == 200


def test_rate_limited(client: TestClient, users, workspace_id, report_id):
    token = _token(client, workspace_id, report_id, users["member"], rate_limit_per_hour=2)

    assert client.get(f"/share-links/{token}").status_code == 200
    assert client.get(f"/share-links/{token}").status_code == 200
    third = client.get(f"/share-links/{token}")

    assert third.status_code == 429
    assert third.json()["error"] == "rate_limited"
    assert third.headers["Retry-After"] == "3600"


# -----------------------------------------------------
# Manage
# -----------------------------------------------------
def test_only_creator_or_admin_revokes(client: TestClient, users, workspace_id, report_id):
    link_id = _create_link(client, workspace_id, report_id, users["member"]).json()["share_link"]["id"]
    url = f"/workspaces/{workspace_id}/share-links/{link_id}"

    viewer = client.delete(url, headers=auth_headers(users["viewer"]))
    assert viewer.status_code == 403

    admin = client.delete(url, headers=auth_headers(users["admin"]))
    assert admin.status_code == 200


def test_link_events_for_creator(client: TestClient, users, workspace_id, report_id):
    response = _create_link(client, workspace_id, report_id, users["member"])
    link = response.json()["share_link"]
    client.get(f"/share-links/{link['token']}")

    events = client.get(
        f"/workspaces/{workspace_id}/share-links/{link['id']}/events",
        headers=auth_headers(users["member"]),
    )

    assert events.status_code == 200
    assert sorted(e["event_type"] for e in events.json()["events"]) == ["created", "viewed"]


def test_report_links_listing(client: TestClient, users, workspace_id, report_id):
    _create_link(client, workspace_id, report_id, users["member"])
    _create_link(client, workspace_id, report_id, users["admin"])

    response = client.get(
        f"/workspaces/{workspace_id}/reports/{report_id}/share-links",
        headers=auth_headers(users["viewer"]),
    )

    assert len(response.json()["share_links"]) == 2


def test_report_links_listing_rejects_malformed_report_id(client: TestClient, users, workspace_id):
    response = client.get(
        f"/workspaces/{workspace_id}/reports/abc/share-links",
        headers=auth_headers(users["viewer"]),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_record_expired_links(fake_db, workspace_id, report_id):
    now = datetime.now(timezone.utc)
    fake_db.seed(
        "share_links",
        {"workspace_id": workspace_id, "report_id": report_id, "revoked_at": None,
         "expires_at": (now - timedelta(minutes=10)).isoformat()},
        {"workspace_id": workspace_id, "report_id": report_id, "revoked_at": None,
         "expires_at": (now - timedelta(days=2)).isoformat()},
        {"workspace_id": workspace_id, "report_id": report_id, "revoked_at": None,
         "expires_at": (now + timedelta(days=2)).isoformat()},
    )

    assert record_expired_links(now - timedelta(hours=1), now) == 1
    assert [e["event_type"] for e in fake_db.rows("share_link_events")] == ["expired"]


def test_permission_rows_seeded(client: TestClient, fake_db, users, workspace_id, report_id):
    link_id = _create_link(client, workspace_id, report_id, users["member"]).json()["share_link"]["id"]

    assert has_permission(link_id, "view")
    assert not has_permission(link_id, "download")


def test_notify_recipient_queues_email(client: TestClient, fake_db, monkeypatch, users, workspace_id, report_id):
    sent = []
    monkeypatch.setattr(
        "services.share_links.send_share_email",
        lambda email, report_name, token, message=None: sent.append((email, report_name)) or True,
    )

    response = _create_link(
        client, workspace_id, report_id, users["member"],
        recipient_email="Buyer@Example.com", recipient_name="Mele", notify_recipient=True, message="Take a look",
    )

    assert response.status_code == 201
    assert sent == [("buyer@example.com", "Lot 15 ADU")]

    notification = fake_db.rows("share_notifications")[0]
    assert notification["status"] == "sent"
    assert notification["body"] == "Take a look"
    assert fake_db.rows("workspace_activities")[-1]["activity_type"] == "report_shared"
