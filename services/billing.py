"""
Stripe subscription events → workspace billing state.
"""

from typing import Optional

from core.logging_config import logger
from core.notifications import send_webhook_message
from core.plans import get_plan_for_tier
from core.stripe_helpers import (
    epoch_to_datetime,
    map_stripe_status,
    price_id_from_subscription,
    tier_for_price,
)
from core.supabase_client import get_supabase_client
from core.utils import is_valid_uuid
from core.workspace_access import fetch_workspace
from models.billing import BillingState, BillingSyncData
from models.enums import BillingStatus, SubscriptionTier
from services.entitlements import get_billing_state, sync_billing_state_from_stripe


SUBSCRIPTION_UPSERT_EVENTS = {
    "customer.subscription.created",
    "customer.subscription.updated",
}
SUBSCRIPTION_DELETED_EVENT = "customer.subscription.deleted"


def find_workspace_for_subscription(subscription: dict) -> Optional[str]:
    """
    By stripe_customer_id first, then subscription metadata.workspace_id.
    Returns None unless the id names a live workspace.
    """
    workspace_id = None

    customer_id = subscription.get("customer")
    if customer_id:
        client = get_supabase_client()
        result = (
            client.table("workspace_billing")
            .select("workspace_id")
            .eq("stripe_customer_id", customer_id)
            .limit(1)
            .execute()
        )
        if result.data:
            workspace_id = result.data[0]["workspace_id"]

    if not workspace_id:
        metadata = subscription.get("metadata") or {}
        workspace_id = metadata.get("workspace_id")

    if not is_valid_uuid(workspace_id):
        return None
    if fetch_workspace(workspace_id) is None:
        return None
    return workspace_id


def build_sync_data(event_type: str, event_id: Optional[str], subscription: dict) -> BillingSyncData:
    if event_type == SUBSCRIPTION_DELETED_EVENT:
        tier = SubscriptionTier.free.value
        status = BillingStatus.cancelled.value
    else:
        tier = tier_for_price(price_id_from_subscription(subscription))
        status = map_stripe_status(subscription.get("status"))

    return BillingSyncData(
        tier=tier,
        status=status,
        stripe_customer_id=subscription.get("customer"),
        stripe_subscription_id=subscription.get("id"),
        current_period_start=epoch_to_datetime(subscription.get("current_period_start")),
        current_period_end=epoch_to_datetime(subscription.get("current_period_end")),
        trial_end=epoch_to_datetime(subscription.get("trial_end")),
        event_id=event_id,
    )


def process_stripe_event(event: dict) -> dict:
    """
    Apply one Stripe event. Returns a small status dict for the webhook response.
    Unknown workspaces and unrelated event types are acknowledged and ignored.
    """
    event_type = event.get("type")
    event_id = event.get("id")

    if event_type not in SUBSCRIPTION_UPSERT_EVENTS and event_type != SUBSCRIPTION_DELETED_EVENT:
        logger.info(f"Ignoring Stripe event {event_type}")
        return {"status": "ignored", "event_type": event_type}

    subscription = (event.get("data") or {}).get("object") or {}

    workspace_id = find_workspace_for_subscription(subscription)
    if not workspace_id:
        logger.warning(f"Stripe event {event_id} ({event_type}) matches no workspace")
        return {"status": "ignored", "reason": "unknown_workspace"}

    previous = get_billing_state(workspace_id)
    if event_id and previous.last_webhook_event_id == event_id:
        logger.info(f"Stripe event {event_id} already processed for workspace {workspace_id}")
        return {"status": "ignored", "reason": "duplicate_event"}

    data = build_sync_data(event_type, event_id, subscription)
    state = sync_billing_state_from_stripe(workspace_id, data)

    if previous.tier != state.tier:
        send_webhook_message(
            f"Workspace {workspace_id} plan changed: {previous.tier.value} → {state.tier.value} "
            f"({state.status.value})"
        )

    logger.info(f"Stripe {event_type} applied to workspace {workspace_id}: {state.tier.value}/{state.status.value}")
    return {
        "status": "processed",
        "workspace_id": workspace_id,
        "tier": state.tier.value,
        "billing_status": state.status.value,
    }


def billing_view(billing: BillingState, include_stripe_ids: bool) -> dict:
    """Billing state as returned to members; Stripe ids only for owners."""
    view = {
        "workspace_id": billing.workspace_id,
        "tier": billing.tier.value,
        "status": billing.status.value,
        "plan": get_plan_for_tier(billing.tier.value).model_dump(),
        "current_period_end": billing.current_period_end,
        "trial_end": billing.trial_end,
    }
    if include_stripe_ids:
        view["stripe_customer_id"] = billing.stripe_customer_id
        view["stripe_subscription_id"] = billing.stripe_subscription_id
    return view
