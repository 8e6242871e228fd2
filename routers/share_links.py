# routers/share_links.py

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from core.utils import validate_uuid
from dependencies.auth import get_optional_user, CurrentUser
from dependencies.workspace import enforce_entitlement, requires_entitlement, requires_workspace_permission
from models.share_link import (
    ShareLinkCreate,
    ShareLinkCreatedResponse,
    ShareLinkEventListResponse,
    ShareLinkListResponse,
    ShareLinkResponse,
)
from models.workspace import WorkspaceAccess
from services.share_links import (
    COLLABORATION_ROLES,
    create_share_link,
    get_share_link_events,
    get_workspace_link,
    list_report_links,
    list_workspace_links,
    require_link_manager,
    resolve_share_link,
    revoke_share_link,
)


router = APIRouter(tags=["Share Links"])


# ============================================================
# WORKSPACE-SCOPED
# ============================================================
@router.post(
    "/workspaces/{workspace_id}/reports/{report_id}/share-links",
    status_code=201,
    response_model=ShareLinkCreatedResponse,
    summary="Create share link for a report",
)
def create_share_link_endpoint(
    report_id: str,
    payload: ShareLinkCreate,
    request: Request,
    access: WorkspaceAccess = Depends(requires_entitlement("ccp-12:sharing", "share_links:create")),
):
    """
    The full token is only ever returned here.
    Commenter / editor links need the collaboration feature.
    """
    validate_uuid(report_id, "report_id")
    if payload.access_role.value in COLLABORATION_ROLES:
        enforce_entitlement(access, "ccp-10:collaboration", request)

    link = create_share_link(access, report_id, payload, request)
    return {"share_link": link}


@router.get(
    "/workspaces/{workspace_id}/reports/{report_id}/share-links",
    response_model=ShareLinkListResponse,
    summary="List a report's share links",
)
def list_report_links_endpoint(
    report_id: str,
    access: WorkspaceAccess = Depends(requires_workspace_permission("share_links:read")),
):
    validate_uuid(report_id, "report_id")
    return {"share_links": list_report_links(access.workspace_id, report_id)}


@router.get("/workspaces/{workspace_id}/share-links", response_model=ShareLinkListResponse, summary="List workspace share links")
def list_workspace_links_endpoint(access: WorkspaceAccess = Depends(requires_workspace_permission("share_links:read"))):
    return {"share_links": list_workspace_links(access.workspace_id)}


@router.get(
    "/workspaces/{workspace_id}/share-links/{share_link_id}/events",
    response_model=ShareLinkEventListResponse,
    summary="Share link events",
)
def list_link_events_endpoint(
    share_link_id: str,
    access: WorkspaceAccess = Depends(requires_workspace_permission("share_links:read")),
):
    validate_uuid(share_link_id, "share_link_id")
    link = get_workspace_link(access.workspace_id, share_link_id)
    require_link_manager(access, link)
    return {"events": get_share_link_events(share_link_id)}


@router.delete(
    "/workspaces/{workspace_id}/share-links/{share_link_id}",
    response_model=ShareLinkResponse,
    summary="Revoke share link",
)
def revoke_share_link_endpoint(
    share_link_id: str,
    request: Request,
    access: WorkspaceAccess = Depends(requires_workspace_permission("share_links:read")),
):
    """Creator of the link or a workspace admin."""
    validate_uuid(share_link_id, "share_link_id")
    link = revoke_share_link(access, share_link_id, request)
    return {"share_link": link}


# ============================================================
# PUBLIC RESOLUTION
# ============================================================
@router.get("/share-links/{token}", summary="Open a shared report")
def resolve_share_link_endpoint(
    token: str,
    request: Request,
    x_share_password: Optional[str] = Header(None),
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
):
    return resolve_share_link(token, current_user, request, password=x_share_password)
