# routers/reports.py

from fastapi import APIRouter, Depends, Query, Request

from core.errors import not_found
from core.utils import is_valid_uuid, validate_uuid
from core.workspace_access import check_workspace_access
from dependencies.auth import get_current_user, CurrentUser
from dependencies.workspace import enforce_entitlement, requires_entitlement, requires_workspace_permission
from models.report import ReportCreate, ReportListResponse, ReportResponse, ReportStatusUpdate
from models.workspace import WorkspaceAccess
from services.audit import audit_report_retrieved, audit_reports_listed
from services.quotas import assert_can_create_report
from services.reports import (
    create_report,
    delete_report,
    get_report_or_404,
    list_reports,
    update_report_status,
)


router = APIRouter(
    prefix="/workspaces/{workspace_id}/reports",
    tags=["Reports"],
)


# ============================================================
# CREATE
# ============================================================
@router.post("", status_code=201, response_model=ReportResponse, summary="Create report")
def create_report_endpoint(
    payload: ReportCreate,
    request: Request,
    access: WorkspaceAccess = Depends(requires_entitlement("ccp-03:report-generation", "reports:create")),
):
    """
    Admin + report generation entitlement + monthly quota.
    Branded reports also need the branded-reports entitlement.
    """
    if payload.branded:
        enforce_entitlement(access, "ccp-06:branded-reports", request)

    assert_can_create_report(access.workspace_id)

    report = create_report(access, payload)
    return {"report": report}


# ============================================================
# LIST
# ============================================================
@router.get("", response_model=ReportListResponse, summary="List reports")
def list_reports_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    access: WorkspaceAccess = Depends(requires_entitlement("ccp-04:report-viewing", "reports:read")),
):
    reports, total = list_reports(access.workspace_id, page, limit)
    audit_reports_listed(access.user_id, access.workspace_id, len(reports))
    return {
        "reports": reports,
        "pagination": {"page": page, "limit": limit, "total": total},
    }


# ============================================================
# SINGLE REPORT
# ============================================================
@router.get("/{report_id}", response_model=ReportResponse, summary="Get report")
def get_report_endpoint(
    workspace_id: str,
    report_id: str,
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Non-members and missing reports both get 404 so report ids
    cannot be discovered across workspaces.
    """
    if not is_valid_uuid(workspace_id) or not is_valid_uuid(report_id):
        raise not_found("Report not found")

    result = check_workspace_access(current_user, workspace_id)
    if not result.workspace_exists or not result.is_member:
        raise not_found("Report not found")

    report = get_report_or_404(workspace_id, report_id)
    audit_report_retrieved(current_user.id, workspace_id, report_id)
    return {"report": report}


@router.patch("/{report_id}", response_model=ReportResponse, summary="Update report status")
def update_report_endpoint(
    report_id: str,
    payload: ReportStatusUpdate,
    access: WorkspaceAccess = Depends(requires_workspace_permission("reports:update")),
):
    validate_uuid(report_id, "report_id")
    report = update_report_status(access.workspace_id, report_id, payload.status)
    return {"report": report}


@router.delete("/{report_id}", summary="Delete report")
def delete_report_endpoint(
    report_id: str,
    access: WorkspaceAccess = Depends(requires_workspace_permission("reports:delete")),
):
    validate_uuid(report_id, "report_id")
    delete_report(access.workspace_id, report_id)
    return {"success": True}
