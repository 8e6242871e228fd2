"""
Audit trail writers and readers.

Three append-only streams:
  • audit_events: successful sensitive operations (report.created, ...)
  • workspace_audit_logs: workspace governance (members, billing, entitlement denials)
  • entitlement_checks / blocked_access_logs: entitlement decisions and UI paywall hits

Writes are best effort: a failed insert is logged and never breaks the
operation being audited.
"""

from datetime import timedelta
from typing import Optional, Tuple, List

from fastapi import Request

from core.logging_config import logger
from core.supabase_client import get_supabase_client
from core.utils import get_request_context, utcnow, utcnow_iso
from models.enums import AuditStatus
from services.activity_sanitizer import sanitize_activity_meta


# ============================================================
# audit_events (success-only event stream)
# ============================================================
def emit_audit_event(
    event_type: str,
    account_id: Optional[str],
    workspace_id: Optional[str],
    resource_type: str,
    action: str,
    resource_id: Optional[str] = None,
    details: Optional[dict] = None,
) -> None:
    try:
        client = get_supabase_client()
        client.table("audit_events").insert({
            "event_type": event_type,
            "account_id": account_id,
            "workspace_id": workspace_id,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "action": action,
            "details": details or {},
            "created_at": utcnow_iso(),
        }).execute()
        logger.info(f"[audit] {event_type} workspace={workspace_id} resource={resource_id}")
    except Exception as e:
        logger.error(f"[audit] Failed to emit {event_type}: {e}")


def audit_report_created(account_id: str, workspace_id: str, report_id: str, parcel_id: Optional[str] = None):
    emit_audit_event("report.created", account_id, workspace_id, "report", "create", report_id, {"parcel_id": parcel_id})


def audit_reports_listed(account_id: str, workspace_id: str, count: int):
    emit_audit_event("reports.listed", account_id, workspace_id, "report", "list", None, {"count": count})


def audit_report_retrieved(account_id: str, workspace_id: str, report_id: str):
    emit_audit_event("report.retrieved", account_id, workspace_id, "report", "read", report_id)


def audit_share_link_created(account_id: str, workspace_id: str, share_link_id: str, report_id: str, role: str):
    emit_audit_event(
        "share_link.created", account_id, workspace_id, "share_link", "create", share_link_id,
        {"report_id": report_id, "role": role},
    )


def audit_share_link_revoked(account_id: str, workspace_id: str, share_link_id: str):
    emit_audit_event("share_link.revoked", account_id, workspace_id, "share_link", "revoke", share_link_id)


def audit_contact_created(account_id: str, workspace_id: str, contact_id: str):
    emit_audit_event("contact.created", account_id, workspace_id, "contact", "create", contact_id)


def audit_contacts_imported(account_id: str, workspace_id: str, upload_id: Optional[str], counts: dict):
    emit_audit_event("contacts.imported", account_id, workspace_id, "contact", "import", upload_id, counts)


def audit_member_invited(account_id: str, workspace_id: str, invite_id: str, email: str, role: str):
    emit_audit_event(
        "member.invited", account_id, workspace_id, "member", "invite", invite_id,
        {"email": email, "role": role},
    )


def audit_member_joined(account_id: str, workspace_id: str, role: str):
    emit_audit_event("member.joined", account_id, workspace_id, "member", "join", account_id, {"role": role})


# ============================================================
# workspace_audit_logs (governance trail)
# ============================================================
def compute_changed_fields(old_values: Optional[dict], new_values: Optional[dict]) -> List[str]:
    old_values = old_values or {}
    new_values = new_values or {}
    return sorted(k for k in new_values if old_values.get(k) != new_values.get(k))


def log_workspace_audit(
    workspace_id: str,
    actor_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    old_values: Optional[dict] = None,
    new_values: Optional[dict] = None,
    reason: Optional[str] = None,
    status: str = AuditStatus.success.value,
    request: Optional[Request] = None,
    metadata: Optional[dict] = None,
) -> None:
    entry_metadata = dict(metadata or {})
    entry_metadata.update(get_request_context(request))

    changed_fields = None
    if old_values is not None and new_values is not None:
        changed_fields = compute_changed_fields(old_values, new_values)

    try:
        client = get_supabase_client()
        client.table("workspace_audit_logs").insert({
            "workspace_id": workspace_id,
            "actor_id": actor_id,
            "action": str(action),
            "resource_type": str(resource_type),
            "resource_id": resource_id,
            "old_values": old_values,
            "new_values": new_values,
            "changed_fields": changed_fields,
            "reason": reason,
            "status": str(status),
            "metadata": entry_metadata,
            "created_at": utcnow_iso(),
        }).execute()
    except Exception as e:
        logger.error(f"[audit] Failed to write workspace audit {action} for {workspace_id}: {e}")


def get_workspace_audit_logs(
    workspace_id: str,
    page: int = 1,
    limit: int = 50,
    action: Optional[str] = None,
) -> Tuple[list, int]:
    client = get_supabase_client()
    offset = (page - 1) * limit

    query = (
        client.table("workspace_audit_logs")
        .select("*", count="exact")
        .eq("workspace_id", workspace_id)
    )
    if action:
        query = query.eq("action", action)

    result = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
    rows = result.data or []
    total = result.count if result.count is not None else len(rows)
    return rows, total


def get_workspace_audit_summary(workspace_id: str, days: int = 30) -> dict:
    client = get_supabase_client()
    since = (utcnow() - timedelta(days=days)).isoformat()

    result = (
        client.table("workspace_audit_logs")
        .select("action, status")
        .eq("workspace_id", workspace_id)
        .gte("created_at", since)
        .execute()
    )

    summary = {"total": 0, "by_action": {}, "by_status": {}, "denied_count": 0, "days": days}
    for row in result.data or []:
        summary["total"] += 1
        summary["by_action"][row["action"]] = summary["by_action"].get(row["action"], 0) + 1
        summary["by_status"][row["status"]] = summary["by_status"].get(row["status"], 0) + 1
        if row["status"] == AuditStatus.denied.value:
            summary["denied_count"] += 1
    return summary


# ============================================================
# Entitlement decisions & paywall hits
# ============================================================
def log_entitlement_check(
    workspace_id: str,
    user_id: str,
    feature: str,
    enabled: bool,
    reason: Optional[str],
    tier: str,
    cached: bool,
    context: Optional[dict] = None,
) -> None:
    context = context or {}
    try:
        client = get_supabase_client()
        client.table("entitlement_checks").insert({
            "workspace_id": workspace_id,
            "user_id": user_id,
            "feature": feature,
            "result": enabled,
            "reason": reason,
            "tier": tier,
            "cached": cached,
            "user_agent": context.get("user_agent"),
            "ip_address": context.get("ip_address"),
            "created_at": utcnow_iso(),
        }).execute()
    except Exception as e:
        logger.error(f"[audit] Failed to log entitlement check {feature} for {workspace_id}: {e}")


def log_blocked_access(
    user_id: Optional[str],
    workspace_id: Optional[str],
    feature: str,
    tier: Optional[str],
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> None:
    try:
        client = get_supabase_client()
        client.table("blocked_access_logs").insert({
            "user_id": user_id,
            "workspace_id": workspace_id,
            "feature": feature,
            "tier": tier,
            "user_agent": user_agent,
            "ip_address": ip_address,
            "created_at": utcnow_iso(),
        }).execute()
    except Exception as e:
        logger.error(f"[audit] Failed to log blocked access for {feature}: {e}")


# ============================================================
# Activity feed
# ============================================================
def log_activity(
    user_id: Optional[str],
    workspace_id: Optional[str],
    activity_type: str,
    meta: Optional[dict] = None,
) -> None:
    """
    Append a sanitized activity entry.

    A ValueError from the sanitizer (full token in metadata) propagates;
    storage failures do not.
    """
    metadata = sanitize_activity_meta(activity_type, meta)

    try:
        client = get_supabase_client()
        client.table("workspace_activities").insert({
            "user_id": user_id,
            "workspace_id": workspace_id,
            "activity_type": str(activity_type),
            "metadata": metadata,
            "created_at": utcnow_iso(),
        }).execute()
    except Exception as e:
        logger.error(f"[audit] Failed to log activity {activity_type}: {e}")


def list_activities(workspace_id: str, limit: int = 50) -> list:
    client = get_supabase_client()
    result = (
        client.table("workspace_activities")
        .select("*")
        .eq("workspace_id", workspace_id)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return result.data or []
