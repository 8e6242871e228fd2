# routers/stripe_webhooks.py

from typing import Optional

from fastapi import APIRouter, Header, Request

from core.logging_config import logger
from core.stripe_helpers import construct_webhook_event
from services.billing import process_stripe_event


router = APIRouter(
    prefix="/webhooks/stripe",
    tags=["Webhooks"],
)


@router.post("", summary="Stripe subscription webhook")
async def handle_stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
):
    """
    Handle Stripe subscription webhook events.

    Processes:
    - customer.subscription.created
    - customer.subscription.updated
    - customer.subscription.deleted

    **Setup:**
    1. Configure the endpoint in the Stripe Dashboard: `https://your-api.com/webhooks/stripe`
    2. Select events: `customer.subscription.*`
    3. Add the signing secret to `STRIPE_WEBHOOK_SECRET`

    Events for unknown workspaces, replays and other event types are
    acknowledged with 200 so Stripe stops retrying them.
    """
    # Raw body, the signature covers the exact bytes
    body = await request.body()

    event = construct_webhook_event(body, stripe_signature)
    logger.info(f"Received Stripe webhook event: {event.get('type')} ({event.get('id')})")

    return process_stripe_event(event)
