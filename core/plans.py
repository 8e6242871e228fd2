# core/plans.py

"""
Plan catalogue (Home / Studio / Portfolio) with pricing, entitlement flags
and limits. Plans map onto subscription tiers; tiers without a plan of their
own (pro_plus, enterprise) borrow the limits of the nearest plan below them.
"""

from typing import List, Optional

from core.config import settings
from core.tiers import (
    get_minimum_tier_for,
    is_tier_sufficient,
    normalize_tier,
    tier_rank,
)
from models.billing import PlanDefinition, PlanEntitlements, PlanLimits, UpgradeOption


UNLIMITED = -1


def _build_plans() -> dict:
    return {
        "home": PlanDefinition(
            id="home",
            name="Home",
            display_name="Home Plan",
            tier="free",
            price=29,
            stripe_price_id=settings.STRIPE_PRICE_HOME,
            description="Perfect for homebuyers and individual users",
            features=[
                "Parcel discovery and search",
                "Basic report generation",
                "Report viewing",
                "Basic sharing",
                "Up to 10 reports per month",
            ],
            ccps=["ccp-01", "ccp-02", "ccp-03", "ccp-04", "ccp-12"],
            entitlements=PlanEntitlements(
                can_resolve_parcels=True,
                can_generate_reports=True,
                can_view_reports=True,
                can_share_basic=True,
            ),
            limits=PlanLimits(user_limit=2, storage_gb=10, reports_per_month=10),
        ),
        "studio": PlanDefinition(
            id="studio",
            name="Studio",
            display_name="Studio Plan",
            tier="pro",
            price=79,
            stripe_price_id=settings.STRIPE_PRICE_STUDIO,
            description="For real estate professionals and small teams",
            features=[
                "All Home features",
                "Branded reports",
                "Saved parcels",
                "Up to 50 reports per month",
                "Advanced search filters",
            ],
            ccps=["ccp-01", "ccp-02", "ccp-03", "ccp-04", "ccp-06", "ccp-08", "ccp-12"],
            entitlements=PlanEntitlements(
                can_resolve_parcels=True,
                can_generate_reports=True,
                can_view_reports=True,
                can_brand_reports=True,
                can_save_parcels=True,
                can_share_basic=True,
            ),
            limits=PlanLimits(user_limit=5, storage_gb=50, reports_per_month=50),
        ),
        "portfolio": PlanDefinition(
            id="portfolio",
            name="Portfolio",
            display_name="Portfolio Plan",
            tier="portfolio",
            price=199,
            stripe_price_id=settings.STRIPE_PRICE_PORTFOLIO,
            description="Enterprise solution with advanced collaboration",
            features=[
                "All Studio features",
                "Contact upload",
                "Advanced collaboration",
                "Role-based share links (viewer/commenter/editor)",
                "Time-limited links",
                "Recipient tracking",
                "Audit trails",
                "Event management",
                "Data export",
                "Unlimited reports",
            ],
            ccps=[
                "ccp-01", "ccp-02", "ccp-03", "ccp-04", "ccp-06", "ccp-07",
                "ccp-08", "ccp-09", "ccp-10", "ccp-11", "ccp-12", "ccp-15",
            ],
            entitlements=PlanEntitlements(
                can_resolve_parcels=True,
                can_generate_reports=True,
                can_view_reports=True,
                can_brand_reports=True,
                can_save_parcels=True,
                can_upload_contacts=True,
                can_share_collaboration=True,
                can_manage_events=True,
                can_share_basic=True,
                can_export_data=True,
            ),
            limits=PlanLimits(user_limit=25, storage_gb=500, reports_per_month=UNLIMITED),
        ),
    }


PLAN_DEFINITIONS = _build_plans()


def get_plan_by_id(plan_id: str) -> Optional[PlanDefinition]:
    return PLAN_DEFINITIONS.get(plan_id)


def get_plan_by_tier(tier: str) -> Optional[PlanDefinition]:
    """Exact tier match only."""
    for plan in PLAN_DEFINITIONS.values():
        if plan.tier.value == tier:
            return plan
    return None


def get_plan_for_tier(tier: Optional[str]) -> PlanDefinition:
    """
    Plan whose limits apply to a workspace on ``tier``: the highest-ranked
    plan at or below it. Always returns a plan (Home is the floor).
    """
    rank = tier_rank(tier)
    candidates = [p for p in PLAN_DEFINITIONS.values() if tier_rank(p.tier.value) <= rank]
    if not candidates:
        return PLAN_DEFINITIONS["home"]
    return max(candidates, key=lambda p: tier_rank(p.tier.value))


def get_all_plans() -> List[PlanDefinition]:
    return sorted(PLAN_DEFINITIONS.values(), key=lambda p: p.price)


def plan_has_entitlement(plan_id: str, entitlement: str) -> bool:
    plan = get_plan_by_id(plan_id)
    if not plan:
        return False
    return bool(getattr(plan.entitlements, entitlement, False))


def get_minimum_plan_for_feature(feature: str) -> Optional[PlanDefinition]:
    """Cheapest plan whose tier unlocks the feature, or None."""
    minimum_tier = get_minimum_tier_for(feature)
    if minimum_tier is None:
        return None

    for plan in get_all_plans():
        if is_tier_sufficient(plan.tier.value, minimum_tier):
            return plan
    return None


def get_upgrade_option(current_tier: Optional[str], feature: str) -> UpgradeOption:
    current = normalize_tier(current_tier)
    minimum_tier = get_minimum_tier_for(feature)

    if minimum_tier is None:
        return UpgradeOption(feature=feature, current_tier=current, needs_upgrade=False)

    needs_upgrade = not is_tier_sufficient(current, minimum_tier)
    return UpgradeOption(
        feature=feature,
        current_tier=current,
        minimum_tier=minimum_tier,
        needs_upgrade=needs_upgrade,
        recommended_plan=get_minimum_plan_for_feature(feature) if needs_upgrade else None,
    )
