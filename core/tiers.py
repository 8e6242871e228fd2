# core/tiers.py

"""
Tier / feature contract.

Features are identified by their contract id (``ccp-XX:name``). Each has a
minimum subscription tier; tiers are strictly ordered.
"""

from typing import List, Optional

from models.enums import SubscriptionTier


# ============================================
# TIER ORDER (ascending)
# ============================================
TIER_ORDER: List[str] = [
    SubscriptionTier.free.value,
    SubscriptionTier.pro.value,
    SubscriptionTier.pro_plus.value,
    SubscriptionTier.portfolio.value,
    SubscriptionTier.enterprise.value,
]


# ============================================
# FEATURE → MINIMUM TIER
# ============================================
FEATURE_MINIMUM_TIER = {
    "ccp-01:parcel-discovery": "free",
    "ccp-02:parcel-context": "free",
    "ccp-03:report-generation": "free",
    "ccp-04:report-viewing": "free",
    "ccp-05:billing": "free",
    "ccp-06:branded-reports": "pro",
    "ccp-07:audit-logging": "free",
    "ccp-08:saved-parcels": "pro",
    "ccp-09:contact-upload": "pro_plus",
    "ccp-10:collaboration": "pro_plus",
    "ccp-11:events": "pro_plus",
    "ccp-12:sharing": "free",
    "ccp-14:premium-features": "pro",
    "ccp-15:export": "portfolio",
}

ALL_FEATURES: List[str] = list(FEATURE_MINIMUM_TIER.keys())

FEATURE_DESCRIPTIONS = {
    "ccp-01:parcel-discovery": "Search and discover parcels by address or location",
    "ccp-02:parcel-context": "View detailed parcel information and context",
    "ccp-03:report-generation": "Generate parcel reports",
    "ccp-04:report-viewing": "View and access saved reports",
    "ccp-05:billing": "Manage billing and subscription",
    "ccp-06:branded-reports": "Create and share branded reports",
    "ccp-07:audit-logging": "Access audit logs and compliance records",
    "ccp-08:saved-parcels": "Save and bookmark parcels for later",
    "ccp-09:contact-upload": "Import contacts in bulk",
    "ccp-10:collaboration": "Collaborate with team members",
    "ccp-11:events": "Track and manage events",
    "ccp-12:sharing": "Share reports and parcels with others",
    "ccp-14:premium-features": "Access premium features and tools",
    "ccp-15:export": "Export data in various formats",
}

TIER_DESCRIPTIONS = {
    "free": "Free tier - Basic parcel discovery and reporting",
    "pro": "Pro tier - Branded reports and saved parcels",
    "pro_plus": "Pro Plus - Contact management and collaboration",
    "portfolio": "Portfolio - Data export and advanced analytics",
    "enterprise": "Enterprise - Custom features and support",
}


def normalize_tier(tier: Optional[str]) -> str:
    """Unknown or empty tiers are treated as free."""
    if tier in TIER_ORDER:
        return tier
    return SubscriptionTier.free.value


def tier_rank(tier: Optional[str]) -> int:
    return TIER_ORDER.index(normalize_tier(tier))


def is_tier_sufficient(user_tier: Optional[str], required_tier: Optional[str]) -> bool:
    return tier_rank(user_tier) >= tier_rank(required_tier)


def is_valid_feature(feature: str) -> bool:
    return feature in FEATURE_MINIMUM_TIER


def get_minimum_tier_for(feature: str) -> Optional[str]:
    return FEATURE_MINIMUM_TIER.get(feature)


def get_features_for_tier(tier: Optional[str]) -> List[str]:
    """Every feature the tier unlocks, in contract order."""
    return [f for f, minimum in FEATURE_MINIMUM_TIER.items() if is_tier_sufficient(tier, minimum)]


def get_feature_description(feature: str) -> str:
    return FEATURE_DESCRIPTIONS.get(feature, "Unknown feature")


def get_tier_description(tier: str) -> str:
    return TIER_DESCRIPTIONS.get(normalize_tier(tier), "")
