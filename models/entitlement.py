from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from models.enums import SubscriptionTier


class EntitlementCheckResult(BaseModel):
    feature: str
    enabled: bool
    tier: SubscriptionTier
    reason: Optional[str] = None
    cached: bool = False
    resolved_at: datetime
    cache_ttl_remaining: Optional[int] = None


class EntitlementsOverview(BaseModel):
    workspace_id: str
    tier: SubscriptionTier
    status: str
    entitlements: Dict[str, EntitlementCheckResult]
    enabled_features: List[str]
    cache_hit_rate: float


class BlockedAccessCreate(BaseModel):
    """UI paywall hit, sent by the dashboard when a gated control is clicked."""

    feature: str = Field(..., min_length=1, max_length=100)
    tier: Optional[str] = Field(None, max_length=50)
    workspace_id: Optional[str] = None
    user_agent: Optional[str] = Field(None, max_length=1000)
