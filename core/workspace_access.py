from typing import Optional

from core.errors import api_error, forbidden_access_denied, forbidden_admin_required
from core.logging_config import logger
from core.permissions import has_role_at_least, minimum_role_for, role_has_permission
from core.supabase_client import get_supabase_client
from dependencies.auth import CurrentUser
from models.enums import MemberStatus, WorkspaceRole
from models.workspace import MembershipResult, WorkspaceAccess, WorkspaceAccessResult


NOT_MEMBER = "NOT_MEMBER"
DELETED = "DELETED"
SUSPENDED = "SUSPENDED"
UNKNOWN = "UNKNOWN"


# -----------------------------------------------------
# Lookups
# -----------------------------------------------------
def fetch_workspace(workspace_id: str) -> Optional[dict]:
    """Live (not soft-deleted) workspace row, or None."""
    client = get_supabase_client()
    result = (
        client.table("workspaces")
        .select("*")
        .eq("id", workspace_id)
        .limit(1)
        .execute()
    )
    if not result.data:
        return None

    workspace = result.data[0]
    if workspace.get("deleted_at"):
        return None
    return workspace


def fetch_membership(user_id: str, workspace_id: str) -> Optional[dict]:
    client = get_supabase_client()
    result = (
        client.table("workspace_members")
        .select("*")
        .eq("workspace_id", workspace_id)
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


# -----------------------------------------------------
# Membership verification (never raises)
# -----------------------------------------------------
def verify_workspace_membership(user_id: str, workspace_id: str) -> MembershipResult:
    """
    Is the user an active member of a live workspace?

    Lookup failures deny access (reason UNKNOWN).
    """
    try:
        if fetch_workspace(workspace_id) is None:
            return MembershipResult(ok=False, reason=DELETED)

        member = fetch_membership(user_id, workspace_id)
        if member is None:
            return MembershipResult(ok=False, reason=NOT_MEMBER)

        if member.get("status") == MemberStatus.suspended.value:
            return MembershipResult(ok=False, reason=SUSPENDED)

        return MembershipResult(ok=True, role=member.get("role"))

    except Exception as e:
        logger.error(f"Membership lookup failed for user {user_id} in workspace {workspace_id}: {e}")
        return MembershipResult(ok=False, reason=UNKNOWN)


def verify_workspace_role(user_id: str, workspace_id: str, required_role: str) -> bool:
    membership = verify_workspace_membership(user_id, workspace_id)
    if not membership.ok:
        return False
    return has_role_at_least(membership.role, required_role)


def check_workspace_access(user: CurrentUser, workspace_id: str) -> WorkspaceAccessResult:
    """
    Full access picture for one user / workspace pair.

    Platform staff: super_admin acts as owner everywhere, support as viewer.
    """
    try:
        workspace = fetch_workspace(workspace_id)
    except Exception as e:
        logger.error(f"Workspace lookup failed for {workspace_id}: {e}")
        return WorkspaceAccessResult(workspace_exists=False, is_member=False, is_admin=False, reason=UNKNOWN)

    if workspace is None:
        return WorkspaceAccessResult(workspace_exists=False, is_member=False, is_admin=False, reason=DELETED)

    if user.is_super_admin or user.is_support:
        role = WorkspaceRole.owner if user.is_super_admin else WorkspaceRole.viewer
        return WorkspaceAccessResult(
            workspace_exists=True,
            is_member=True,
            is_admin=has_role_at_least(role.value, WorkspaceRole.admin.value),
            role=role,
            workspace=workspace,
        )

    membership = verify_workspace_membership(user.id, workspace_id)
    if not membership.ok:
        return WorkspaceAccessResult(
            workspace_exists=membership.reason != DELETED,
            is_member=False,
            is_admin=False,
            reason=membership.reason,
            workspace=workspace,
        )

    return WorkspaceAccessResult(
        workspace_exists=True,
        is_member=True,
        is_admin=has_role_at_least(membership.role.value, WorkspaceRole.admin.value),
        role=membership.role,
        workspace=workspace,
    )


# -----------------------------------------------------
# Enforcement (raises structured HTTP errors)
# -----------------------------------------------------
def insufficient_role_error(required_role: str):
    if required_role == WorkspaceRole.admin.value:
        return forbidden_admin_required()
    return api_error(
        403,
        "WORKSPACE_INSUFFICIENT_ROLE",
        f"Workspace role '{required_role}' or higher required",
        required_role=required_role,
    )


def enforce_workspace_access(
    user: CurrentUser,
    workspace_id: str,
    required_role: Optional[str] = None,
    permission: Optional[str] = None,
) -> WorkspaceAccess:
    """
    Raise unless the user may act in the workspace.

    404 WORKSPACE_NOT_FOUND  → missing or soft-deleted workspace
    403 WORKSPACE_ACCESS_DENIED → not a member, suspended, or lookup failure
    403 WORKSPACE_ADMIN_REQUIRED / WORKSPACE_INSUFFICIENT_ROLE → role too low
    """
    result = check_workspace_access(user, workspace_id)

    if not result.workspace_exists:
        if result.reason == UNKNOWN:
            raise forbidden_access_denied()
        logger.info(f"Workspace {workspace_id} not found for user {user.id}")
        raise api_error(404, "WORKSPACE_NOT_FOUND", "Workspace not found")

    if not result.is_member:
        logger.warning(f"Workspace access denied: user={user.id} workspace={workspace_id} reason={result.reason}")
        raise forbidden_access_denied()

    role = result.role.value

    if permission and not role_has_permission(role, permission):
        needed = minimum_role_for(permission) or WorkspaceRole.owner.value
        logger.warning(f"Permission '{permission}' denied: user={user.id} role={role} workspace={workspace_id}")
        raise insufficient_role_error(needed)

    if required_role and not has_role_at_least(role, required_role):
        logger.warning(f"Role '{required_role}' required: user={user.id} role={role} workspace={workspace_id}")
        raise insufficient_role_error(required_role)

    return WorkspaceAccess(
        workspace_id=workspace_id,
        user_id=user.id,
        user_email=user.email,
        role=result.role,
        workspace=result.workspace or {},
    )
