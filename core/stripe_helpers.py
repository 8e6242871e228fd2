# core/stripe_helpers.py

import json
from datetime import datetime, timezone
from typing import Optional

import stripe

from core.config import settings
from core.errors import api_error
from core.logging_config import logger
from models.enums import BillingStatus, SubscriptionTier


# Stripe subscription status → workspace billing status
STRIPE_STATUS_MAP = {
    "active": BillingStatus.active.value,
    "trialing": BillingStatus.trial.value,
    "past_due": BillingStatus.past_due.value,
    "incomplete": BillingStatus.past_due.value,
    "unpaid": BillingStatus.unpaid.value,
    "paused": BillingStatus.unpaid.value,
    "canceled": BillingStatus.cancelled.value,
    "incomplete_expired": BillingStatus.cancelled.value,
}


def construct_webhook_event(payload: bytes, signature: Optional[str]) -> dict:
    """
    Verify and parse a Stripe webhook body.

    With STRIPE_WEBHOOK_SECRET set the signature must verify (400 otherwise).
    Without one, unsigned events are accepted outside production only.
    """
    secret = settings.STRIPE_WEBHOOK_SECRET

    if not secret:
        if settings.ENV == "production":
            logger.error("Stripe webhook received but STRIPE_WEBHOOK_SECRET is not configured")
            raise api_error(400, "WEBHOOK_NOT_CONFIGURED", "Webhook signing secret not configured")

        logger.warning("Stripe webhook secret not configured - signature verification disabled")
        try:
            return json.loads(payload.decode("utf-8"))
        except ValueError:
            raise api_error(400, "INVALID_PAYLOAD", "Invalid webhook payload")

    if not signature:
        raise api_error(400, "INVALID_SIGNATURE", "Missing Stripe-Signature header")

    try:
        stripe.Webhook.construct_event(payload, signature, secret)
    except ValueError as e:
        logger.error(f"Invalid payload in webhook: {e}")
        raise api_error(400, "INVALID_PAYLOAD", "Invalid webhook payload")
    except stripe.SignatureVerificationError as e:
        logger.error(f"Invalid signature in webhook: {e}")
        raise api_error(400, "INVALID_SIGNATURE", "Invalid webhook signature")

    # Verified; work with the plain JSON body from here on
    return json.loads(payload.decode("utf-8"))


def map_stripe_status(status: Optional[str]) -> str:
    """Unknown Stripe statuses are treated as past_due (access paused, not lost)."""
    mapped = STRIPE_STATUS_MAP.get(status or "")
    if mapped is None:
        logger.warning(f"Unmapped Stripe subscription status '{status}', treating as past_due")
        return BillingStatus.past_due.value
    return mapped


def tier_for_price(price_id: Optional[str]) -> str:
    tier = settings.STRIPE_PRICE_TIER_MAP.get(price_id or "")
    if tier not in SubscriptionTier.list():
        if price_id:
            logger.warning(f"Unknown Stripe price '{price_id}', defaulting to free")
        return SubscriptionTier.free.value
    return tier


def price_id_from_subscription(subscription: dict) -> Optional[str]:
    items = (subscription.get("items") or {}).get("data") or []
    if not items:
        return None
    price = items[0].get("price") or {}
    return price.get("id")


def epoch_to_datetime(value) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)
