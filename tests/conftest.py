# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.

Every module that imports ``get_supabase_client`` by name is pointed at one
in-memory FakeSupabase per test. Users authenticate with real bearer tokens
registered on the fake auth client, so the whole auth → membership →
entitlement chain runs as in production.
"""

import uuid

import pytest
from fastapi.testclient import TestClient
from typing import Generator

from main import create_app
from core.rate_limiter import reset_rate_limits
from services.entitlements import clear_all_cache
from tests.fakes import FakeSupabase, seed_workspace


SUPABASE_CONSUMERS = [
    "core.supabase_client",
    "core.workspace_access",
    "dependencies.auth",
    "services.audit",
    "services.billing",
    "services.contacts",
    "services.entitlements",
    "services.members",
    "services.parcels",
    "services.quotas",
    "services.reports",
    "services.share_links",
    "services.workspaces",
]

USERS = {
    "owner": ("owner-token", "owner@example.com"),
    "admin": ("admin-token", "admin@example.com"),
    "member": ("member-token", "member@example.com"),
    "viewer": ("viewer-token", "viewer@example.com"),
    "outsider": ("outsider-token", "outsider@example.com"),
}


@pytest.fixture
def fake_db(monkeypatch) -> FakeSupabase:
    db = FakeSupabase()
    for module in SUPABASE_CONSUMERS:
        monkeypatch.setattr(f"{module}.get_supabase_client", lambda: db)
    return db


@pytest.fixture(scope="function")
def app():
    """Create a test FastAPI application instance."""
    return create_app()


@pytest.fixture(scope="function")
def client(app, fake_db) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def users(fake_db) -> dict:
    """role name → {"id", "email", "token"}; outsider belongs to no workspace."""
    created = {}
    for name, (token, email) in USERS.items():
        user_id = str(uuid.uuid4())
        fake_db.auth.add_user(token, user_id, email)
        created[name] = {"id": user_id, "email": email, "token": token}
    return created


@pytest.fixture
def workspace_id(fake_db, users) -> str:
    """Free-tier workspace with one member per role (outsider excluded)."""
    members = {role: users[role] for role in ("owner", "admin", "member", "viewer")}
    return seed_workspace(fake_db, members)


@pytest.fixture(autouse=True)
def reset_state():
    """Entitlement cache and rate-limit windows are process globals."""
    clear_all_cache()
    reset_rate_limits()
    yield
    clear_all_cache()
    reset_rate_limits()
