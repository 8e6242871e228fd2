"""
Server-authoritative entitlement checks.

A workspace's billing state (tier + subscription status) decides which
features are enabled. Decisions are cached per (workspace, feature) and the
cache is invalidated whenever billing changes or the workspace is deleted.
"""

from typing import Dict, List, Optional

from core.cache import SimpleCache
from core.config import settings
from core.errors import handle_supabase_error
from core.logging_config import logger
from core.supabase_client import get_supabase_client
from core.tiers import ALL_FEATURES, get_minimum_tier_for, is_tier_sufficient, is_valid_feature, normalize_tier
from core.utils import parse_datetime, utcnow, utcnow_iso
from models.billing import BillingState, BillingSyncData
from models.entitlement import EntitlementCheckResult
from models.enums import (
    AuditResourceType,
    BillingStatus,
    DenialReason,
    SubscriptionTier,
    WorkspaceAuditAction,
)
from services.audit import log_entitlement_check, log_workspace_audit


INACTIVE_STATUSES = {
    BillingStatus.cancelled.value,
    BillingStatus.past_due.value,
    BillingStatus.unpaid.value,
}

_entitlement_cache = SimpleCache()


def _cache_key(workspace_id: str, feature: str) -> str:
    return f"{workspace_id}:{feature}"


# ============================================================
# Billing state
# ============================================================
def get_billing_state(workspace_id: str) -> BillingState:
    """Billing row for the workspace; a missing row reads as free / active."""
    client = get_supabase_client()
    result = (
        client.table("workspace_billing")
        .select("*")
        .eq("workspace_id", workspace_id)
        .limit(1)
        .execute()
    )
    if not result.data:
        return BillingState(workspace_id=workspace_id)

    row = dict(result.data[0])
    row["tier"] = normalize_tier(row.get("tier"))
    if row.get("status") not in BillingStatus.list():
        row["status"] = BillingStatus.active.value
    return BillingState(**row)


# ============================================================
# Decision
# ============================================================
def determine_denial_reason(billing: BillingState, minimum_tier: str, feature: Optional[str] = None) -> Optional[str]:
    """
    Why the feature is denied, or None when allowed.

    Order: global kill switch, inactive subscription, tier, expired trial.
    Free-tier features survive an inactive subscription (the workspace falls
    back to free). An expired trial denies every feature until it converts.
    """
    if feature and feature in settings.DISABLED_FEATURES:
        return DenialReason.FEATURE_DISABLED.value

    free_feature = minimum_tier == SubscriptionTier.free.value
    status = billing.status.value

    if status in INACTIVE_STATUSES and not free_feature:
        return DenialReason.SUBSCRIPTION_INACTIVE.value

    if not is_tier_sufficient(billing.tier.value, minimum_tier):
        return DenialReason.TIER_INSUFFICIENT.value

    if status == BillingStatus.trial.value and billing.trial_end:
        trial_end = parse_datetime(billing.trial_end)
        if utcnow() > trial_end:
            return DenialReason.GRACE_PERIOD_EXPIRED.value

    return None


def get_entitlement_status(
    workspace_id: str,
    feature: str,
    user_id: Optional[str] = None,
    context: Optional[dict] = None,
) -> EntitlementCheckResult:
    """
    1. invalid feature → disabled, FEATURE_UNAVAILABLE (never cached)
    2. cache hit → stored decision, cached=True with remaining TTL
    3. otherwise load billing, decide, cache
    4. with a user_id, append an entitlement_checks row (best effort)
    """
    if not is_valid_feature(feature):
        return EntitlementCheckResult(
            feature=feature,
            enabled=False,
            tier=SubscriptionTier.free,
            reason=DenialReason.FEATURE_UNAVAILABLE.value,
            cached=False,
            resolved_at=utcnow(),
        )

    key = _cache_key(workspace_id, feature)
    entry = _entitlement_cache.get_entry(key)

    if entry is not None:
        result = entry.value.model_copy(update={
            "cached": True,
            "cache_ttl_remaining": entry.ttl_remaining(),
        })
    else:
        billing = get_billing_state(workspace_id)
        reason = determine_denial_reason(billing, get_minimum_tier_for(feature), feature)
        result = EntitlementCheckResult(
            feature=feature,
            enabled=reason is None,
            tier=billing.tier,
            reason=reason,
            cached=False,
            resolved_at=utcnow(),
        )
        _entitlement_cache.set(key, result, settings.ENTITLEMENT_CACHE_TTL_SECONDS)

    if user_id:
        log_entitlement_check(
            workspace_id=workspace_id,
            user_id=user_id,
            feature=feature,
            enabled=result.enabled,
            reason=result.reason,
            tier=result.tier.value,
            cached=result.cached,
            context=context,
        )

    return result


def check_multiple_entitlements(
    workspace_id: str,
    features: List[str],
    user_id: Optional[str] = None,
    context: Optional[dict] = None,
) -> Dict[str, EntitlementCheckResult]:
    return {
        feature: get_entitlement_status(workspace_id, feature, user_id, context)
        for feature in features
    }


def get_enabled_entitlements(workspace_id: str) -> List[str]:
    results = check_multiple_entitlements(workspace_id, ALL_FEATURES)
    return [feature for feature, result in results.items() if result.enabled]


# ============================================================
# Cache management
# ============================================================
def invalidate_workspace_cache(workspace_id: str) -> int:
    removed = _entitlement_cache.delete_prefix(f"{workspace_id}:")
    logger.info(f"Invalidated {removed} cached entitlements for workspace {workspace_id}")
    return removed


def clear_all_cache() -> int:
    return _entitlement_cache.clear()


def cleanup_expired_cache() -> int:
    return _entitlement_cache.cleanup_expired()


def get_cache_statistics() -> dict:
    stats = _entitlement_cache.stats()
    stats["ttl_seconds"] = settings.ENTITLEMENT_CACHE_TTL_SECONDS
    return stats


# ============================================================
# Billing sync (Stripe → workspace_billing)
# ============================================================
def sync_billing_state_from_stripe(workspace_id: str, data: BillingSyncData) -> BillingState:
    """
    Upsert the workspace's billing row from a Stripe subscription event,
    drop cached entitlements and record the change.
    """
    previous = get_billing_state(workspace_id)
    now = utcnow_iso()

    row = {
        "workspace_id": workspace_id,
        "tier": data.tier.value,
        "status": data.status.value,
        "stripe_customer_id": data.stripe_customer_id or previous.stripe_customer_id,
        "stripe_subscription_id": data.stripe_subscription_id or previous.stripe_subscription_id,
        "current_period_start": data.current_period_start.isoformat() if data.current_period_start else None,
        "current_period_end": data.current_period_end.isoformat() if data.current_period_end else None,
        "trial_end": data.trial_end.isoformat() if data.trial_end else None,
        "last_webhook_event_id": data.event_id,
        "last_webhook_at": now,
        "synced_at": now,
    }

    try:
        client = get_supabase_client()
        result = client.table("workspace_billing").upsert(row, on_conflict="workspace_id").execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to sync billing state", 500)

    invalidate_workspace_cache(workspace_id)

    old_values = {"tier": previous.tier.value, "status": previous.status.value}
    new_values = {"tier": data.tier.value, "status": data.status.value}

    log_workspace_audit(
        workspace_id=workspace_id,
        actor_id=None,
        action=WorkspaceAuditAction.billing_sync.value,
        resource_type=AuditResourceType.billing.value,
        old_values=old_values,
        new_values=new_values,
        metadata={"stripe_event_id": data.event_id},
    )

    if previous.tier != data.tier:
        upgraded = is_tier_sufficient(data.tier.value, previous.tier.value)
        action = WorkspaceAuditAction.plan_upgraded if upgraded else WorkspaceAuditAction.plan_downgraded
        log_workspace_audit(
            workspace_id=workspace_id,
            actor_id=None,
            action=action.value,
            resource_type=AuditResourceType.billing.value,
            old_values={"tier": previous.tier.value},
            new_values={"tier": data.tier.value},
        )
        logger.info(f"Workspace {workspace_id} plan changed {previous.tier.value} → {data.tier.value}")

    stored = (result.data or [row])[0]
    return BillingState(**{**row, **stored})
