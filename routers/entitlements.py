# routers/entitlements.py

from fastapi import APIRouter, Depends, Request

from core.errors import validation_error
from core.tiers import (
    ALL_FEATURES,
    get_feature_description,
    get_minimum_tier_for,
    get_tier_description,
    is_valid_feature,
)
from core.utils import get_request_context
from dependencies.workspace import requires_workspace_role
from models.workspace import WorkspaceAccess
from services.entitlements import check_multiple_entitlements, get_billing_state, get_entitlement_status


router = APIRouter(
    prefix="/workspaces/{workspace_id}/entitlements",
    tags=["Entitlements"],
)


@router.get("", summary="All feature entitlements for a workspace")
def list_entitlements(
    request: Request,
    access: WorkspaceAccess = Depends(requires_workspace_role()),
):
    results = check_multiple_entitlements(
        access.workspace_id,
        ALL_FEATURES,
        access.user_id,
        get_request_context(request),
    )
    billing = get_billing_state(access.workspace_id)
    hits = sum(1 for r in results.values() if r.cached)

    return {
        "workspace_id": access.workspace_id,
        "tier": billing.tier.value,
        "status": billing.status.value,
        "tier_description": get_tier_description(billing.tier.value),
        "entitlements": {feature: r.model_dump(mode="json") for feature, r in results.items()},
        "enabled_features": [feature for feature, r in results.items() if r.enabled],
        "cache_hit_rate": round(hits / len(results), 2) if results else 0.0,
    }


@router.get("/{feature}", summary="Check one feature")
def get_entitlement(
    feature: str,
    request: Request,
    access: WorkspaceAccess = Depends(requires_workspace_role()),
):
    """
    Server-authoritative check. Denials are reported in the body
    (enabled=false + reason), not as an error status.
    """
    if not is_valid_feature(feature):
        raise validation_error(
            f"Unknown feature '{feature}'",
            details=[{"field": "feature", "issue": "unknown feature"}],
        )

    result = get_entitlement_status(access.workspace_id, feature, access.user_id, get_request_context(request))
    return {
        **result.model_dump(mode="json"),
        "description": get_feature_description(feature),
        "minimum_tier": get_minimum_tier_for(feature),
    }
