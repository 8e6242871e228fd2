"""
Report persistence. Access checks (membership, role, entitlements, quota)
happen in the router before these functions run.
"""

from typing import Optional, Tuple

from core.errors import conflict, handle_supabase_error, not_found
from core.logging_config import logger
from core.supabase_client import get_supabase_client
from core.utils import utcnow_iso
from models.enums import ActivityType, ReportStatus
from models.report import REPORT_VERSION, ReportCreate
from models.workspace import WorkspaceAccess
from services.audit import audit_report_created, log_activity


SECTION_TYPES = ["overview", "restrictions", "process", "deadlines", "risks", "sources"]


def create_report_sections() -> list:
    """Frozen rpt-0.1 section skeleton."""
    sections = [{"type": section, "blocks": []} for section in SECTION_TYPES]
    sections[-1]["blocks"].append({"type": "evidence_list", "items": []})
    return sections


def build_branding(workspace: dict) -> dict:
    branding = {"workspace_name": workspace.get("brand_name") or workspace.get("name") or ""}
    if workspace.get("brand_primary_color"):
        branding["color_primary"] = workspace["brand_primary_color"]
    if workspace.get("brand_logo_url"):
        branding["logo_url"] = workspace["brand_logo_url"]
    return branding


def build_report_record(access: WorkspaceAccess, payload: ReportCreate) -> dict:
    ctx = payload.parcel_context
    now = utcnow_iso()
    return {
        "workspace_id": access.workspace_id,
        "name": payload.report_name or f"Report {now}",
        "status": ReportStatus.draft.value,
        "version": REPORT_VERSION,
        "projection": {
            "parcel_id": ctx.parcel_id,
            "location": {"lat": ctx.lat, "lng": ctx.lng},
            "intent": ctx.intent,
        },
        "branding": build_branding(access.workspace) if payload.branded else None,
        "sections": create_report_sections(),
        "source": ctx.source,
        "created_by": access.user_id,
        "created_at": now,
        "updated_at": now,
    }


def create_report(access: WorkspaceAccess, payload: ReportCreate) -> dict:
    client = get_supabase_client()
    record = build_report_record(access, payload)

    duplicate = (
        client.table("reports")
        .select("id")
        .eq("workspace_id", access.workspace_id)
        .eq("name", record["name"])
        .limit(1)
        .execute()
    )
    if duplicate.data:
        raise conflict(f"A report named '{record['name']}' already exists in this workspace")

    try:
        result = client.table("reports").insert(record).execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create report", 500)

    report = result.data[0]
    logger.info(f"Report {report['id']} created in workspace {access.workspace_id}")

    audit_report_created(access.user_id, access.workspace_id, report["id"], payload.parcel_context.parcel_id)
    log_activity(access.user_id, access.workspace_id, ActivityType.report_created.value, {
        "report_id": report["id"],
        "parcel_id": payload.parcel_context.parcel_id,
        "schema_version": REPORT_VERSION,
    })
    return report


def list_reports(workspace_id: str, page: int = 1, limit: int = 20) -> Tuple[list, int]:
    client = get_supabase_client()
    offset = (page - 1) * limit

    result = (
        client.table("reports")
        .select("*", count="exact")
        .eq("workspace_id", workspace_id)
        .order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    rows = result.data or []
    total = result.count if result.count is not None else len(rows)
    return rows, total


def fetch_report(workspace_id: str, report_id: str) -> Optional[dict]:
    client = get_supabase_client()
    result = (
        client.table("reports")
        .select("*")
        .eq("id", report_id)
        .eq("workspace_id", workspace_id)
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def get_report_or_404(workspace_id: str, report_id: str) -> dict:
    report = fetch_report(workspace_id, report_id)
    if report is None:
        raise not_found("Report not found")
    return report


def update_report_status(workspace_id: str, report_id: str, status: ReportStatus) -> dict:
    report = get_report_or_404(workspace_id, report_id)

    client = get_supabase_client()
    try:
        result = (
            client.table("reports")
            .update({"status": status.value, "updated_at": utcnow_iso()})
            .eq("id", report_id)
            .eq("workspace_id", workspace_id)
            .execute()
        )
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update report", 500)

    return result.data[0] if result.data else {**report, "status": status.value}


def delete_report(workspace_id: str, report_id: str) -> None:
    get_report_or_404(workspace_id, report_id)

    client = get_supabase_client()
    try:
        client.table("reports").delete().eq("id", report_id).eq("workspace_id", workspace_id).execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete report", 500)
