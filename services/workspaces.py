"""
Workspace lifecycle: create, list, update, soft delete, and the per-user
active workspace pointer.
"""

from typing import List, Optional

from fastapi import HTTPException, Request

from core.errors import api_error, handle_supabase_error
from core.logging_config import logger
from core.supabase_client import get_supabase_client
from core.utils import is_valid_uuid, slugify, utcnow_iso
from core.workspace_access import fetch_workspace, verify_workspace_membership
from dependencies.auth import CurrentUser
from models.enums import (
    ActivityType,
    AuditResourceType,
    BillingStatus,
    MemberStatus,
    SubscriptionTier,
    WorkspaceAuditAction,
    WorkspaceRole,
)
from models.workspace import WorkspaceCreate, WorkspaceUpdate
from services.audit import compute_changed_fields, log_activity, log_workspace_audit
from services.entitlements import invalidate_workspace_cache


ACTIVE_WORKSPACE_SCHEMA = "active-workspace-0.1"


# ============================================================
# Create
# ============================================================
def _unique_slug(client, user_id: str, name: str) -> str:
    base = slugify(name)
    result = (
        client.table("workspaces")
        .select("slug")
        .eq("created_by", user_id)
        .execute()
    )
    taken = {row.get("slug") for row in result.data or []}

    slug = base
    suffix = 2
    while slug in taken:
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


def _discard_partial_workspace(client, workspace_id: str) -> None:
    for table in ("workspace_billing", "workspace_members"):
        try:
            client.table(table).delete().eq("workspace_id", workspace_id).execute()
        except Exception as e:
            logger.error(f"Failed to clean up {table} for workspace {workspace_id}: {e}")
    try:
        client.table("workspaces").delete().eq("id", workspace_id).execute()
    except Exception as e:
        logger.error(f"Failed to remove partially created workspace {workspace_id}: {e}")
    else:
        logger.warning(f"Removed partially created workspace {workspace_id}")


def create_workspace(user: CurrentUser, payload: WorkspaceCreate, request: Optional[Request] = None) -> dict:
    """
    Creator becomes owner, billing starts at free / active, and the new
    workspace becomes the creator's active one if they have none yet.
    A failure part way through removes the rows already written.
    """
    client = get_supabase_client()
    now = utcnow_iso()
    workspace_id = None

    try:
        workspace_res = client.table("workspaces").insert({
            "name": payload.name,
            "slug": _unique_slug(client, user.id, payload.name),
            "created_by": user.id,
            "created_at": now,
            "updated_at": now,
        }).execute()

        if not workspace_res.data:
            raise api_error(500, "INTERNAL_ERROR", "Failed to create workspace")

        workspace = workspace_res.data[0]
        workspace_id = workspace["id"]

        client.table("workspace_members").insert({
            "workspace_id": workspace_id,
            "user_id": user.id,
            "email": user.email,
            "role": WorkspaceRole.owner.value,
            "status": MemberStatus.active.value,
            "joined_at": now,
        }).execute()

        client.table("workspace_billing").insert({
            "workspace_id": workspace_id,
            "tier": SubscriptionTier.free.value,
            "status": BillingStatus.active.value,
            "synced_at": now,
        }).execute()

        existing_active = (
            client.table("user_active_workspace")
            .select("workspace_id")
            .eq("user_id", user.id)
            .limit(1)
            .execute()
        )
        if not existing_active.data:
            client.table("user_active_workspace").upsert({
                "user_id": user.id,
                "workspace_id": workspace_id,
                "updated_at": now,
            }, on_conflict="user_id").execute()

    except HTTPException:
        raise
    except Exception as e:
        if workspace_id:
            _discard_partial_workspace(client, workspace_id)
        raise handle_supabase_error(e, "Failed to create workspace", 500)

    log_workspace_audit(
        workspace_id=workspace_id,
        actor_id=user.id,
        action=WorkspaceAuditAction.created.value,
        resource_type=AuditResourceType.workspace.value,
        resource_id=workspace_id,
        new_values={"name": workspace["name"], "slug": workspace.get("slug")},
        request=request,
    )
    log_activity(user.id, workspace_id, ActivityType.create_workspace.value, {
        "workspace_id": workspace_id,
        "workspace_name": workspace["name"],
    })

    logger.info(f"Workspace {workspace_id} created by {user.id}")
    return {**workspace, "role": WorkspaceRole.owner.value}


# ============================================================
# Read
# ============================================================
def list_user_workspaces(user_id: str) -> List[dict]:
    client = get_supabase_client()

    memberships = (
        client.table("workspace_members")
        .select("workspace_id, role, status")
        .eq("user_id", user_id)
        .eq("status", MemberStatus.active.value)
        .execute()
    ).data or []

    if not memberships:
        return []

    role_by_workspace = {m["workspace_id"]: m["role"] for m in memberships}

    workspaces = (
        client.table("workspaces")
        .select("*")
        .in_("id", list(role_by_workspace.keys()))
        .is_("deleted_at", "null")
        .order("created_at")
        .execute()
    ).data or []

    return [{**w, "role": role_by_workspace.get(w["id"])} for w in workspaces]


# ============================================================
# Update / delete
# ============================================================
def update_workspace(
    workspace: dict,
    actor_id: str,
    payload: WorkspaceUpdate,
    request: Optional[Request] = None,
) -> dict:
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise api_error(400, "VALIDATION_ERROR", "No fields to update")

    old_values = {k: workspace.get(k) for k in updates}
    updates["updated_at"] = utcnow_iso()

    client = get_supabase_client()
    try:
        result = (
            client.table("workspaces")
            .update(updates)
            .eq("id", workspace["id"])
            .execute()
        )
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update workspace", 500)

    updated = result.data[0] if result.data else {**workspace, **updates}
    new_values = {k: updated.get(k) for k in old_values}

    log_workspace_audit(
        workspace_id=workspace["id"],
        actor_id=actor_id,
        action=WorkspaceAuditAction.updated.value,
        resource_type=AuditResourceType.workspace.value,
        resource_id=workspace["id"],
        old_values=old_values,
        new_values=new_values,
        request=request,
    )
    log_activity(actor_id, workspace["id"], ActivityType.update_workspace.value, {
        "updated_fields": compute_changed_fields(old_values, new_values),
    })

    return updated


def delete_workspace(workspace: dict, actor_id: str, request: Optional[Request] = None) -> None:
    """Soft delete: sets deleted_at and drops cached entitlements."""
    client = get_supabase_client()
    now = utcnow_iso()

    try:
        client.table("workspaces").update({
            "deleted_at": now,
            "updated_at": now,
        }).eq("id", workspace["id"]).execute()

        # Users pointing at this workspace lose their active pointer
        client.table("user_active_workspace").delete().eq("workspace_id", workspace["id"]).execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete workspace", 500)

    invalidate_workspace_cache(workspace["id"])

    log_workspace_audit(
        workspace_id=workspace["id"],
        actor_id=actor_id,
        action=WorkspaceAuditAction.deleted.value,
        resource_type=AuditResourceType.workspace.value,
        resource_id=workspace["id"],
        old_values={"deleted_at": None},
        new_values={"deleted_at": now},
        request=request,
    )
    logger.info(f"Workspace {workspace['id']} soft-deleted by {actor_id}")


# ============================================================
# Active workspace
# ============================================================
def _active_payload(row: dict) -> dict:
    return {
        "schema": ACTIVE_WORKSPACE_SCHEMA,
        "data": {
            "user_id": row["user_id"],
            "workspace_id": row["workspace_id"],
            "updated_at": row.get("updated_at"),
        },
    }


def get_active_workspace(user_id: str) -> dict:
    client = get_supabase_client()
    result = (
        client.table("user_active_workspace")
        .select("user_id, workspace_id, updated_at")
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )

    if not result.data:
        raise api_error(403, "workspace_active_forbidden", "No active workspace")

    row = result.data[0]

    # Pointer to a workspace the user can no longer use counts as none
    if not verify_workspace_membership(user_id, row["workspace_id"]).ok:
        raise api_error(403, "workspace_active_forbidden", "No active workspace")

    return _active_payload(row)


def set_active_workspace(user_id: str, workspace_id: Optional[str]) -> dict:
    if not is_valid_uuid(workspace_id):
        raise api_error(
            400,
            "workspace_active_contract",
            "workspace_id must be a valid UUID",
            details=[{"field": "workspace_id", "issue": "must be a valid UUID"}],
        )

    if fetch_workspace(workspace_id) is None or not verify_workspace_membership(user_id, workspace_id).ok:
        raise api_error(403, "workspace_active_forbidden", "Not a member of this workspace")

    row = {"user_id": user_id, "workspace_id": workspace_id, "updated_at": utcnow_iso()}

    client = get_supabase_client()
    try:
        result = client.table("user_active_workspace").upsert(row, on_conflict="user_id").execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to set active workspace", 500)

    return _active_payload(result.data[0] if result.data else row)
