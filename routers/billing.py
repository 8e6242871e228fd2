# routers/billing.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.errors import validation_error
from core.plans import get_all_plans, get_upgrade_option
from core.tiers import is_valid_feature
from dependencies.workspace import requires_workspace_permission
from models.workspace import WorkspaceAccess
from services.billing import billing_view
from services.entitlements import get_billing_state


router = APIRouter(tags=["Billing"])


# -----------------------------------------------------
# GET /plans
# Public plan catalogue, cheapest first
# -----------------------------------------------------
@router.get("/plans", summary="Plan catalogue")
def list_plans():
    return {"plans": [plan.model_dump() for plan in get_all_plans()]}


# -----------------------------------------------------
# GET /plans/upgrade-option?feature=&tier=
# -----------------------------------------------------
@router.get("/plans/upgrade-option", summary="Cheapest plan unlocking a feature")
def upgrade_option(
    feature: str = Query(..., min_length=1),
    tier: Optional[str] = Query(None),
):
    if not is_valid_feature(feature):
        raise validation_error(
            f"Unknown feature '{feature}'",
            details=[{"field": "feature", "issue": "unknown feature"}],
        )
    return get_upgrade_option(tier, feature).model_dump()


# -----------------------------------------------------
# GET /workspaces/{workspace_id}/billing
# Members see the state; only owners see Stripe ids
# -----------------------------------------------------
@router.get("/workspaces/{workspace_id}/billing", summary="Workspace billing state")
def workspace_billing(access: WorkspaceAccess = Depends(requires_workspace_permission("billing:read"))):
    billing = get_billing_state(access.workspace_id)
    return {"billing": billing_view(billing, include_stripe_ids=access.is_owner)}
