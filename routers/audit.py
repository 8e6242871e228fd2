# routers/audit.py

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from core.logging_config import logger
from core.rate_limiter import check_rate_limit, get_client_ip
from dependencies.auth import get_optional_user, CurrentUser
from dependencies.workspace import requires_entitlement, requires_workspace_permission
from models.entitlement import BlockedAccessCreate
from models.workspace import WorkspaceAccess
from services.audit import (
    get_workspace_audit_logs,
    get_workspace_audit_summary,
    list_activities,
    log_blocked_access,
)


BLOCKED_ACCESS_MAX_PER_MINUTE = 30

router = APIRouter(tags=["Audit"])


# ============================================================
# PAYWALL HITS (public, best effort)
# ============================================================
@router.post("/audit/blocked-access", summary="Record a UI paywall hit")
def blocked_access_endpoint(
    payload: BlockedAccessCreate,
    request: Request,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
):
    """
    Always answers ok so the dashboard never surfaces an error for this.
    Excess hits from one IP are dropped silently.
    """
    ip_address = get_client_ip(request)
    allowed, _ = check_rate_limit(f"blocked_access:{ip_address}", BLOCKED_ACCESS_MAX_PER_MINUTE, 60)
    if not allowed:
        logger.warning(f"Dropping blocked-access log from {ip_address}: rate limited")
        return {"status": "ok"}

    log_blocked_access(
        current_user.id if current_user else None,
        payload.workspace_id,
        payload.feature,
        payload.tier,
        payload.user_agent or request.headers.get("user-agent"),
        ip_address,
    )
    return {"status": "ok"}


# ============================================================
# WORKSPACE AUDIT LOG (admin)
# ============================================================
@router.get("/workspaces/{workspace_id}/audit-logs", summary="Workspace audit log")
def list_audit_logs_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    action: Optional[str] = Query(None, max_length=100),
    access: WorkspaceAccess = Depends(requires_entitlement("ccp-07:audit-logging", "audit:read")),
):
    logs, total = get_workspace_audit_logs(access.workspace_id, page, limit, action)
    return {
        "audit_logs": logs,
        "pagination": {"page": page, "limit": limit, "total": total},
    }


@router.get("/workspaces/{workspace_id}/audit-logs/summary", summary="Audit log summary")
def audit_summary_endpoint(
    days: int = Query(30, ge=1, le=365),
    access: WorkspaceAccess = Depends(requires_entitlement("ccp-07:audit-logging", "audit:read")),
):
    return get_workspace_audit_summary(access.workspace_id, days)


# ============================================================
# ACTIVITY FEED (member)
# ============================================================
@router.get("/workspaces/{workspace_id}/activities", summary="Workspace activity feed")
def list_activities_endpoint(
    limit: int = Query(50, ge=1, le=200),
    access: WorkspaceAccess = Depends(requires_workspace_permission("activities:read")),
):
    return {"activities": list_activities(access.workspace_id, limit)}
