from typing import Optional

from fastapi import Depends, Request

from core.errors import api_error
from core.logging_config import logger
from core.plans import get_minimum_plan_for_feature
from core.tiers import get_minimum_tier_for
from core.utils import get_request_context, validate_uuid
from core.workspace_access import enforce_workspace_access
from dependencies.auth import CurrentUser, get_current_user
from models.enums import AuditResourceType, AuditStatus, WorkspaceAuditAction
from models.workspace import WorkspaceAccess
from services.audit import log_workspace_audit
from services.entitlements import get_entitlement_status


# ============================================================
# WORKSPACE MEMBERSHIP / ROLE GUARDS
# ============================================================
def requires_workspace_role(role: Optional[str] = None):
    """
    Usage:
        @router.get("/workspaces/{workspace_id}/x")
        def handler(access: WorkspaceAccess = Depends(requires_workspace_role("admin"))):

    role=None only requires membership.
    """

    def dependency(workspace_id: str, current_user: CurrentUser = Depends(get_current_user)) -> WorkspaceAccess:
        validate_uuid(workspace_id, "workspace_id")
        return enforce_workspace_access(current_user, workspace_id, required_role=role)

    return dependency


def requires_workspace_permission(permission: str):
    def dependency(workspace_id: str, current_user: CurrentUser = Depends(get_current_user)) -> WorkspaceAccess:
        validate_uuid(workspace_id, "workspace_id")
        return enforce_workspace_access(current_user, workspace_id, permission=permission)

    return dependency


# ============================================================
# ENTITLEMENT GUARD (membership first, then entitlement)
# ============================================================
def enforce_entitlement(access: WorkspaceAccess, feature: str, request: Optional[Request] = None) -> None:
    """Raise 403 with the denial reason as code when the feature is not enabled."""
    context = get_request_context(request)
    result = get_entitlement_status(access.workspace_id, feature, access.user_id, context)

    if result.enabled:
        return

    required_tier = get_minimum_tier_for(feature)
    upgrade_plan = get_minimum_plan_for_feature(feature)

    log_workspace_audit(
        workspace_id=access.workspace_id,
        actor_id=access.user_id,
        action=WorkspaceAuditAction.entitlement_denied.value,
        resource_type=AuditResourceType.entitlement.value,
        resource_id=feature,
        reason=result.reason,
        status=AuditStatus.denied.value,
        request=request,
        metadata={"feature": feature, "tier": result.tier.value},
    )
    logger.warning(
        f"Entitlement denied: workspace={access.workspace_id} user={access.user_id} "
        f"feature={feature} reason={result.reason}"
    )

    raise api_error(
        403,
        result.reason,
        f"Feature '{feature}' is not available for this workspace",
        feature=feature,
        tier=result.tier.value,
        required_tier=required_tier,
        upgrade_plan=upgrade_plan.id if upgrade_plan else None,
    )


def requires_entitlement(feature: str, permission: str = "workspace:read"):
    """
    Usage:
        access: WorkspaceAccess = Depends(requires_entitlement("ccp-08:saved-parcels", "parcels:save"))
    """
    access_dependency = requires_workspace_permission(permission)

    def dependency(request: Request, access: WorkspaceAccess = Depends(access_dependency)) -> WorkspaceAccess:
        enforce_entitlement(access, feature, request)
        return access

    return dependency
