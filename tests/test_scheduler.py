# tests/test_scheduler.py

from datetime import datetime, timedelta, timezone

import core.scheduler as scheduler
from services.entitlements import get_cache_statistics, get_entitlement_status
from tests.fakes import seed_workspace


def test_housekeeping_runs_every_job(fake_db, users, monkeypatch):
    monkeypatch.setattr(scheduler, "_last_run", None)
    now = datetime.now(timezone.utc)
    workspace_id = seed_workspace(fake_db, {"owner": users["owner"]})
    fake_db.seed("workspace_invites", {
        "workspace_id": workspace_id,
        "email": "late@example.com",
        "status": "pending",
        "expires_at": (now - timedelta(days=1)).isoformat(),
    })
    fake_db.seed("share_links", {
        "workspace_id": workspace_id,
        "revoked_at": None,
        "expires_at": (now - timedelta(minutes=5)).isoformat(),
    })

    result = scheduler.run_housekeeping()

    assert result == {"cache_entries_removed": 0, "invites_expired": 1, "share_links_expired": 1}
    assert scheduler._last_run is not None


def test_housekeeping_purges_expired_cache(fake_db, users, monkeypatch):
    monkeypatch.setattr(scheduler, "_last_run", None)
    monkeypatch.setattr("services.entitlements.settings.ENTITLEMENT_CACHE_TTL_SECONDS", 0)
    workspace_id = seed_workspace(fake_db, {"owner": users["owner"]})
    get_entitlement_status(workspace_id, "ccp-01:parcel-discovery")

    assert get_cache_statistics()["expired"] == 1
    assert scheduler.run_housekeeping()["cache_entries_removed"] == 1


def test_housekeeping_failure_is_reported(fake_db, monkeypatch):
    monkeypatch.setattr(scheduler, "_last_run", None)
    alerts = []
    monkeypatch.setattr(scheduler, "send_webhook_message", lambda message: alerts.append(message))
    fake_db.failing_tables.add("workspace_invites")

    assert scheduler.run_housekeeping() is None
    assert len(alerts) == 1
    assert scheduler._last_run is None
