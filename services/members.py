"""
Workspace members and email invites.

Owner safety rules:
  • only an owner may grant, revoke or invite the owner role
  • the last owner can be neither demoted nor removed
"""

import secrets
from datetime import timedelta
from typing import List, Optional

from fastapi import HTTPException, Request

from core.config import settings
from core.errors import api_error, conflict, handle_supabase_error, not_found
from core.logging_config import logger, mask_token
from core.notifications import send_invite_email
from core.supabase_client import get_supabase_client
from core.utils import parse_datetime, utcnow, utcnow_iso
from dependencies.auth import CurrentUser
from models.enums import (
    ActivityType,
    AuditResourceType,
    InviteStatus,
    MemberStatus,
    WorkspaceAuditAction,
    WorkspaceRole,
)
from models.workspace import InviteCreate, WorkspaceAccess
from services.audit import (
    audit_member_invited,
    audit_member_joined,
    log_activity,
    log_workspace_audit,
)
from services.quotas import assert_can_invite_members


# ============================================================
# Members
# ============================================================
def list_members(workspace_id: str) -> List[dict]:
    client = get_supabase_client()
    result = (
        client.table("workspace_members")
        .select("*")
        .eq("workspace_id", workspace_id)
        .order("joined_at")
        .execute()
    )
    return result.data or []


def _get_member(workspace_id: str, user_id: str) -> dict:
    client = get_supabase_client()
    result = (
        client.table("workspace_members")
        .select("*")
        .eq("workspace_id", workspace_id)
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )
    if not result.data:
        raise not_found("Member not found")
    return result.data[0]


def _count_owners(workspace_id: str) -> int:
    client = get_supabase_client()
    result = (
        client.table("workspace_members")
        .select("id", count="exact")
        .eq("workspace_id", workspace_id)
        .eq("role", WorkspaceRole.owner.value)
        .eq("status", MemberStatus.active.value)
        .execute()
    )
    return result.count if result.count is not None else len(result.data or [])


def change_member_role(
    access: WorkspaceAccess,
    target_user_id: str,
    new_role: WorkspaceRole,
    request: Optional[Request] = None,
) -> dict:
    member = _get_member(access.workspace_id, target_user_id)
    old_role = member["role"]

    if old_role == new_role.value:
        return member

    touches_owner = WorkspaceRole.owner.value in (old_role, new_role.value)
    if touches_owner and not access.is_owner:
        raise api_error(
            403,
            "WORKSPACE_INSUFFICIENT_ROLE",
            "Only an owner can grant or revoke the owner role",
            required_role=WorkspaceRole.owner.value,
        )

    if old_role == WorkspaceRole.owner.value and _count_owners(access.workspace_id) <= 1:
        raise conflict("The last owner of a workspace cannot be demoted")

    client = get_supabase_client()
    try:
        result = (
            client.table("workspace_members")
            .update({"role": new_role.value})
            .eq("workspace_id", access.workspace_id)
            .eq("user_id", target_user_id)
            .execute()
        )
    except Exception as e:
        raise handle_supabase_error(e, "Failed to change member role", 500)

    log_workspace_audit(
        workspace_id=access.workspace_id,
        actor_id=access.user_id,
        action=WorkspaceAuditAction.member_role_changed.value,
        resource_type=AuditResourceType.member.value,
        resource_id=target_user_id,
        old_values={"role": old_role},
        new_values={"role": new_role.value},
        request=request,
    )

    return result.data[0] if result.data else {**member, "role": new_role.value}


def remove_member(access: WorkspaceAccess, target_user_id: str, request: Optional[Request] = None) -> None:
    """Admins remove anyone; any member may remove themselves."""
    is_self = target_user_id == access.user_id
    if not is_self and not access.is_admin:
        raise api_error(403, "WORKSPACE_ADMIN_REQUIRED", "Admin or owner role required")

    member = _get_member(access.workspace_id, target_user_id)

    if member["role"] == WorkspaceRole.owner.value:
        if not is_self and not access.is_owner:
            raise api_error(
                403,
                "WORKSPACE_INSUFFICIENT_ROLE",
                "Only an owner can remove an owner",
                required_role=WorkspaceRole.owner.value,
            )
        if _count_owners(access.workspace_id) <= 1:
            raise conflict("The last owner of a workspace cannot be removed")

    client = get_supabase_client()
    try:
        (
            client.table("workspace_members")
            .delete()
            .eq("workspace_id", access.workspace_id)
            .eq("user_id", target_user_id)
            .execute()
        )
        client.table("user_active_workspace").delete().eq("user_id", target_user_id).eq(
            "workspace_id", access.workspace_id
        ).execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to remove member", 500)

    log_workspace_audit(
        workspace_id=access.workspace_id,
        actor_id=access.user_id,
        action=WorkspaceAuditAction.member_removed.value,
        resource_type=AuditResourceType.member.value,
        resource_id=target_user_id,
        old_values={"role": member["role"]},
        request=request,
    )
    log_activity(access.user_id, access.workspace_id, ActivityType.remove_member.value, {
        "workspace_id": access.workspace_id,
        "member_id": target_user_id,
        "member_email": member.get("email"),
    })


# ============================================================
# Invites
# ============================================================
def generate_invite_token() -> str:
    return secrets.token_urlsafe(32)


def create_invite(access: WorkspaceAccess, payload: InviteCreate, request: Optional[Request] = None) -> dict:
    email = str(payload.email).lower()

    if payload.role == WorkspaceRole.owner and not access.is_owner:
        raise api_error(
            403,
            "WORKSPACE_INSUFFICIENT_ROLE",
            "Only an owner can invite another owner",
            required_role=WorkspaceRole.owner.value,
        )

    client = get_supabase_client()

    existing_member = (
        client.table("workspace_members")
        .select("id")
        .eq("workspace_id", access.workspace_id)
        .eq("email", email)
        .limit(1)
        .execute()
    )
    if existing_member.data:
        raise conflict("User is already a member of this workspace")

    pending = (
        client.table("workspace_invites")
        .select("id")
        .eq("workspace_id", access.workspace_id)
        .eq("email", email)
        .eq("status", InviteStatus.pending.value)
        .limit(1)
        .execute()
    )
    if pending.data:
        raise conflict("A pending invite already exists for this email")

    assert_can_invite_members(access.workspace_id)

    token = generate_invite_token()
    expires_at = utcnow() + timedelta(days=settings.INVITE_EXPIRY_DAYS)

    try:
        result = client.table("workspace_invites").insert({
            "workspace_id": access.workspace_id,
            "email": email,
            "role": payload.role.value,
            "token": token,
            "status": InviteStatus.pending.value,
            "invited_by": access.user_id,
            "expires_at": expires_at.isoformat(),
            "created_at": utcnow_iso(),
        }).execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create invite", 500)

    invite = result.data[0]
    logger.info(f"Invite {invite['id']} ({mask_token(token)}) created for workspace {access.workspace_id}")

    send_invite_email(email, access.workspace.get("name", "a workspace"), payload.role.value, token)

    audit_member_invited(access.user_id, access.workspace_id, invite["id"], email, payload.role.value)
    log_activity(access.user_id, access.workspace_id, ActivityType.invite_member.value, {
        "workspace_id": access.workspace_id,
        "invited_email": email,
        "role": payload.role.value,
    })

    return invite


def list_pending_invites(workspace_id: str) -> List[dict]:
    client = get_supabase_client()
    result = (
        client.table("workspace_invites")
        .select("id, workspace_id, email, role, status, invited_by, expires_at, created_at")
        .eq("workspace_id", workspace_id)
        .eq("status", InviteStatus.pending.value)
        .order("created_at", desc=True)
        .execute()
    )
    return result.data or []


def revoke_invite(access: WorkspaceAccess, invite_id: str) -> None:
    client = get_supabase_client()
    result = (
        client.table("workspace_invites")
        .select("id, status")
        .eq("id", invite_id)
        .eq("workspace_id", access.workspace_id)
        .limit(1)
        .execute()
    )
    if not result.data:
        raise not_found("Invite not found")

    if result.data[0]["status"] != InviteStatus.pending.value:
        raise conflict("Only pending invites can be revoked")

    client.table("workspace_invites").update({
        "status": InviteStatus.revoked.value,
    }).eq("id", invite_id).execute()


def expire_stale_invites() -> int:
    """Mark pending invites past their expiry as expired. Returns how many."""
    client = get_supabase_client()
    result = (
        client.table("workspace_invites")
        .select("id")
        .eq("status", InviteStatus.pending.value)
        .lt("expires_at", utcnow_iso())
        .execute()
    )
    ids = [row["id"] for row in result.data or []]
    if ids:
        client.table("workspace_invites").update({
            "status": InviteStatus.expired.value,
        }).in_("id", ids).execute()
    return len(ids)


def accept_invite(user: CurrentUser, token: str, request: Optional[Request] = None) -> dict:
    client = get_supabase_client()

    result = (
        client.table("workspace_invites")
        .select("*")
        .eq("token", token)
        .limit(1)
        .execute()
    )
    if not result.data:
        raise not_found("Invite not found")

    invite = result.data[0]

    if invite["status"] != InviteStatus.pending.value:
        raise api_error(410, "INVITE_UNAVAILABLE", f"Invite is {invite['status']}", reason=invite["status"])

    expires_at = parse_datetime(invite.get("expires_at"))
    if expires_at and expires_at < utcnow():
        client.table("workspace_invites").update({
            "status": InviteStatus.expired.value,
        }).eq("id", invite["id"]).execute()
        raise api_error(410, "INVITE_EXPIRED", "Invite has expired", reason=InviteStatus.expired.value)

    if invite["email"].lower() != user.email.lower():
        logger.warning(f"Invite {invite['id']} accepted by wrong account {user.id}")
        raise api_error(403, "INVITE_EMAIL_MISMATCH", "This invite was sent to a different email address")

    workspace_id = invite["workspace_id"]

    # The pending invite already holds a seat
    assert_can_invite_members(workspace_id, additional=0)

    try:
        member_res = client.table("workspace_members").upsert({
            "workspace_id": workspace_id,
            "user_id": user.id,
            "email": user.email.lower(),
            "role": invite["role"],
            "status": MemberStatus.active.value,
            "joined_at": utcnow_iso(),
        }, on_conflict="workspace_id,user_id").execute()

        client.table("workspace_invites").update({
            "status": InviteStatus.accepted.value,
            "accepted_at": utcnow_iso(),
        }).eq("id", invite["id"]).execute()
    except HTTPException:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to accept invite", 500)

    log_workspace_audit(
        workspace_id=workspace_id,
        actor_id=user.id,
        action=WorkspaceAuditAction.member_added.value,
        resource_type=AuditResourceType.member.value,
        resource_id=user.id,
        new_values={"role": invite["role"]},
        request=request,
        metadata={"invite_id": invite["id"]},
    )
    audit_member_joined(user.id, workspace_id, invite["role"])
    log_activity(user.id, workspace_id, ActivityType.accept_invitation.value, {"workspace_id": workspace_id})

    return member_res.data[0] if member_res.data else {
        "workspace_id": workspace_id,
        "user_id": user.id,
        "role": invite["role"],
    }
