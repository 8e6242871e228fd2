# tests/test_entitlements.py

"""
Tests for entitlement decisions, caching and billing sync.
"""

from datetime import timedelta

from core.config import settings
from core.utils import utcnow
from models.billing import BillingSyncData
from services.entitlements import (
    get_billing_state,
    get_cache_statistics,
    get_enabled_entitlements,
    get_entitlement_status,
    invalidate_workspace_cache,
    sync_billing_state_from_stripe,
)
from tests.fakes import auth_headers, seed_workspace


def _workspace(db, users, tier="free", status="active", **billing):
    return seed_workspace(db, {"owner": users["owner"]}, tier=tier, status=status, **billing)


# -----------------------------------------------------
# Decisions
# -----------------------------------------------------
def test_free_workspace_gets_free_features_only(fake_db, users):
    ws = _workspace(fake_db, users)

    assert get_entitlement_status(ws, "ccp-01:parcel-discovery").enabled

    denied = get_entitlement_status(ws, "ccp-08:saved-parcels")
    assert not denied.enabled
    assert denied.reason == "TIER_INSUFFICIENT"
    assert denied.tier.value == "free"


def test_inactive_subscription_denies_paid_features(fake_db, users):
    ws = _workspace(fake_db, users, tier="pro", status="cancelled")

    result = get_entitlement_status(ws, "ccp-06:branded-reports")

    assert not result.enabled
    assert result.reason == "SUBSCRIPTION_INACTIVE"


def test_inactive_subscription_keeps_free_features(fake_db, users):
    ws = _workspace(fake_db, users, tier="pro", status="past_due")

    assert get_entitlement_status(ws, "ccp-03:report-generation").enabled


def test_expired_trial_denies_paid_features(fake_db, users):
    expired = (utcnow() - timedelta(days=1)).isoformat()
    ws = _workspace(fake_db, users, tier="pro", status="trial", trial_end=expired)

    result = get_entitlement_status(ws, "ccp-08:saved-parcels")

    assert not result.enabled
    assert result.reason == "GRACE_PERIOD_EXPIRED"


def test_expired_trial_denies_free_features_too(fake_db, users):
    expired = (utcnow() - timedelta(days=1)).isoformat()
    ws = _workspace(fake_db, users, tier="pro", status="trial", trial_end=expired)

    result = get_entitlement_status(ws, "ccp-01:parcel-discovery")

    assert not result.enabled
    assert result.reason == "GRACE_PERIOD_EXPIRED"


def test_running_trial_allows_paid_features(fake_db, users):
    running = (utcnow() + timedelta(days=5)).isoformat()
    ws = _workspace(fake_db, users, tier="pro", status="trial", trial_end=running)

    assert get_entitlement_status(ws, "ccp-08:saved-parcels").enabled


def test_disabled_feature_kill_switch(fake_db, users, monkeypatch):
    monkeypatch.setattr(settings, "DISABLED_FEATURES", ["ccp-12:sharing"])
    ws = _workspace(fake_db, users, tier="enterprise")

    result = get_entitlement_status(ws, "ccp-12:sharing")

    assert result.reason == "FEATURE_DISABLED"


def test_unknown_feature_is_unavailable_and_not_cached(fake_db, users):
    ws = _workspace(fake_db, users, tier="enterprise")

    first = get_entitlement_status(ws, "ccp-99:teleport")
    second = get_entitlement_status(ws, "ccp-99:teleport")

    assert first.reason == "FEATURE_UNAVAILABLE"
    assert not second.cached


def test_missing_billing_row_reads_as_free(fake_db):
    billing = get_billing_state("3f1b2c4d-0000-4000-8000-000000000000")
    assert billing.tier.value == "free"
    assert billing.status.value == "active"


def test_unknown_stored_tier_is_free(fake_db, users):
    ws = _workspace(fake_db, users, tier="diamond")
    assert get_billing_state(ws).tier.value == "free"


def test_enabled_entitlements_for_pro_plus(fake_db, users):
    ws = _workspace(fake_db, users, tier="pro_plus")

    enabled = get_enabled_entitlements(ws)

    assert "ccp-09:contact-upload" in enabled
    assert "ccp-15:export" not in enabled


# -----------------------------------------------------
# Caching
# -----------------------------------------------------
def test_second_check_is_served_from_cache(fake_db, users):
    ws = _workspace(fake_db, users, tier="pro")

    first = get_entitlement_status(ws, "ccp-06:branded-reports")
    second = get_entitlement_status(ws, "ccp-06:branded-reports")

    assert not first.cached
    assert second.cached
    assert 0 < second.cache_ttl_remaining <= settings.ENTITLEMENT_CACHE_TTL_SECONDS
    assert get_cache_statistics()["valid"] == 1


def test_cache_hides_billing_changes_until_invalidated(fake_db, users):
    ws = _workspace(fake_db, users, tier="free")
    assert not get_entitlement_status(ws, "ccp-06:branded-reports").enabled

    fake_db.rows("workspace_billing")[0]["tier"] = "pro"
    assert not get_entitlement_status(ws, "ccp-06:branded-reports").enabled

    assert invalidate_workspace_cache(ws) == 1
    assert get_entitlement_status(ws, "ccp-06:branded-reports").enabled


def test_checks_with_user_are_logged(fake_db, users):
    ws = _workspace(fake_db, users)

    get_entitlement_status(ws, "ccp-08:saved-parcels", users["owner"]["id"], {"ip_address": "10.0.0.1"})

    row = fake_db.rows("entitlement_checks")[0]
    assert row["feature"] == "ccp-08:saved-parcels"
    assert row["result"] is False
    assert row["reason"] == "TIER_INSUFFICIENT"
    assert row["ip_address"] == "10.0.0.1"


# -----------------------------------------------------
# Billing sync
# -----------------------------------------------------
def test_sync_upgrades_and_invalidates(fake_db, users):
    ws = _workspace(fake_db, users)
    assert not get_entitlement_status(ws, "ccp-08:saved-parcels").enabled

    state = sync_billing_state_from_stripe(ws, BillingSyncData(
        tier="pro",
        status="active",
        stripe_customer_id="cus_123",
        event_id="evt_1",
    ))

    assert state.tier.value == "pro"
    assert len(fake_db.rows("workspace_billing")) == 1
    assert fake_db.rows("workspace_billing")[0]["last_webhook_event_id"] == "evt_1"
    assert get_entitlement_status(ws, "ccp-08:saved-parcels").enabled

    actions = [row["action"] for row in fake_db.rows("workspace_audit_logs")]
    assert "workspace.billing_sync" in actions
    assert "workspace.plan_upgraded" in actions


def test_sync_downgrade_is_audited(fake_db, users):
    ws = _workspace(fake_db, users, tier="portfolio")

    sync_billing_state_from_stripe(ws, BillingSyncData(tier="free", status="cancelled"))

    actions = [row["action"] for row in fake_db.rows("workspace_audit_logs")]
    assert "workspace.plan_downgraded" in actions


# -----------------------------------------------------
# Routes
# -----------------------------------------------------
def test_entitlement_route_reports_denial_in_body(client, users, workspace_id):
    response = client.get(
        f"/workspaces/{workspace_id}/entitlements/ccp-08:saved-parcels",
        headers=auth_headers(users["viewer"]),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["enabled"] is False
    assert body["reason"] == "TIER_INSUFFICIENT"
    assert body["minimum_tier"] == "pro"
    assert body["description"] == "Save and bookmark parcels for later"


def test_entitlement_route_rejects_unknown_feature(client, users, workspace_id):
    response = client.get(
        f"/workspaces/{workspace_id}/entitlements/ccp-99:teleport",
        headers=auth_headers(users["member"]),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_entitlement_overview(client, users, workspace_id):
    headers = auth_headers(users["member"])
    client.get(f"/workspaces/{workspace_id}/entitlements", headers=headers)

    response = client.get(f"/workspaces/{workspace_id}/entitlements", headers=headers)

    body = response.json()
    assert body["tier"] == "free"
    assert body["tier_description"].startswith("Free tier")
    assert "ccp-01:parcel-discovery" in body["enabled_features"]
    assert len(body["entitlements"]) == 14
    assert body["cache_hit_rate"] == 1.0


def test_entitlement_routes_require_membership(client, users, workspace_id):
    response = client.get(
        f"/workspaces/{workspace_id}/entitlements",
        headers=auth_headers(users["outsider"]),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "WORKSPACE_ACCESS_DENIED"
