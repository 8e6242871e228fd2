from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from models.enums import BillingStatus, SubscriptionTier


# -----------------------------------------------------
# PLAN CATALOGUE
# -----------------------------------------------------
class PlanEntitlements(BaseModel):
    can_resolve_parcels: bool = False
    can_generate_reports: bool = False
    can_view_reports: bool = False
    can_brand_reports: bool = False
    can_save_parcels: bool = False
    can_upload_contacts: bool = False
    can_share_collaboration: bool = False
    can_manage_events: bool = False
    can_share_basic: bool = False
    can_export_data: bool = False


class PlanLimits(BaseModel):
    """-1 means unlimited."""

    user_limit: int
    storage_gb: int
    reports_per_month: int


class PlanDefinition(BaseModel):
    id: str
    name: str
    display_name: str
    tier: SubscriptionTier
    price: int
    billing_period: str = "monthly"
    stripe_price_id: Optional[str] = None
    description: str
    features: List[str] = []
    ccps: List[str] = []
    entitlements: PlanEntitlements
    limits: PlanLimits


class UpgradeOption(BaseModel):
    feature: str
    current_tier: SubscriptionTier
    minimum_tier: Optional[SubscriptionTier] = None
    needs_upgrade: bool
    recommended_plan: Optional[PlanDefinition] = None


# -----------------------------------------------------
# WORKSPACE BILLING STATE
# -----------------------------------------------------
class BillingState(BaseModel):
    """Row of ``workspace_billing``; a missing row reads as free / active."""

    workspace_id: str
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    tier: SubscriptionTier = SubscriptionTier.free
    status: BillingStatus = BillingStatus.active
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    last_webhook_event_id: Optional[str] = None
    last_webhook_at: Optional[datetime] = None
    synced_at: Optional[datetime] = None


class BillingSyncData(BaseModel):
    """What a Stripe subscription event resolves to before it is stored."""

    tier: SubscriptionTier
    status: BillingStatus
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    event_id: Optional[str] = None


class BillingStateRead(BaseModel):
    workspace_id: str
    tier: SubscriptionTier
    status: BillingStatus
    plan: Optional[PlanDefinition] = None
    current_period_end: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    stripe_customer_id: Optional[str] = Field(None, description="Owners only")
    stripe_subscription_id: Optional[str] = Field(None, description="Owners only")
