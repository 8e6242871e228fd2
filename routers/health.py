# routers/health.py

from fastapi import APIRouter
from core.supabase_client import ping_supabase
from services.entitlements import get_cache_statistics

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# -----------------------------------------------------
# GET /health/db
# Checks Supabase connection + table queries
# No auth required
# -----------------------------------------------------
@router.get("/db", summary="Supabase / DB health check")
def health_db():
    """
    Verifies Supabase connectivity.
    - Checks if URL + key are configured
    - Attempts to query the core workspace tables
    - Returns row-count + error details per table

    Safe for external health monitors (no auth required).
    """
    status = ping_supabase()
    return {
        "service": "Supabase",
        "status": status.get("status", "unknown"),
        "details": status,
    }


# -----------------------------------------------------
# GET /health/app
# Simple API health check for uptime monitors
# -----------------------------------------------------
@router.get("/app", summary="App health check")
def health_app():
    return {
        "service": "Parcel Intelligence API",
        "status": "ok",
        "entitlement_cache": get_cache_statistics(),
    }
