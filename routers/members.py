# routers/members.py

from fastapi import APIRouter, Depends, Request

from core.utils import validate_uuid
from dependencies.auth import get_current_user, CurrentUser
from dependencies.workspace import requires_workspace_permission
from models.workspace import (
    InviteAccept,
    InviteCreate,
    InviteListResponse,
    InviteResponse,
    MemberListResponse,
    MemberResponse,
    MemberRoleUpdate,
    WorkspaceAccess,
)
from services.members import (
    accept_invite,
    change_member_role,
    create_invite,
    list_members,
    list_pending_invites,
    remove_member,
    revoke_invite,
)


router = APIRouter(tags=["Members"])


# ============================================================
# MEMBERS
# ============================================================
@router.get("/workspaces/{workspace_id}/members", response_model=MemberListResponse, summary="List members")
def list_members_endpoint(access: WorkspaceAccess = Depends(requires_workspace_permission("members:read"))):
    return {"members": list_members(access.workspace_id)}


@router.patch("/workspaces/{workspace_id}/members/{user_id}", response_model=MemberResponse, summary="Change member role")
def change_member_role_endpoint(
    user_id: str,
    payload: MemberRoleUpdate,
    request: Request,
    access: WorkspaceAccess = Depends(requires_workspace_permission("members:manage")),
):
    member = change_member_role(access, user_id, payload.role, request)
    return {"member": member}


@router.delete("/workspaces/{workspace_id}/members/{user_id}", summary="Remove member (or leave)")
def remove_member_endpoint(
    user_id: str,
    request: Request,
    access: WorkspaceAccess = Depends(requires_workspace_permission("workspace:read")),
):
    """Admins can remove anyone; every member can remove themselves."""
    remove_member(access, user_id, request)
    return {"success": True}


# ============================================================
# INVITES
# ============================================================
@router.post(
    "/workspaces/{workspace_id}/invites",
    status_code=201,
    response_model=InviteResponse,
    summary="Invite member",
)
def create_invite_endpoint(
    payload: InviteCreate,
    request: Request,
    access: WorkspaceAccess = Depends(requires_workspace_permission("members:invite")),
):
    return {"invite": create_invite(access, payload, request)}


@router.get("/workspaces/{workspace_id}/invites", response_model=InviteListResponse, summary="List pending invites")
def list_invites_endpoint(access: WorkspaceAccess = Depends(requires_workspace_permission("members:invite"))):
    return {"invites": list_pending_invites(access.workspace_id)}


@router.delete("/workspaces/{workspace_id}/invites/{invite_id}", summary="Revoke invite")
def revoke_invite_endpoint(
    invite_id: str,
    access: WorkspaceAccess = Depends(requires_workspace_permission("members:invite")),
):
    validate_uuid(invite_id, "invite_id")
    revoke_invite(access, invite_id)
    return {"success": True}


@router.post("/invites/accept", response_model=MemberResponse, summary="Accept invite")
def accept_invite_endpoint(
    payload: InviteAccept,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
):
    member = accept_invite(current_user, payload.token, request)
    return {"member": member}
