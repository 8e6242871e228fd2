from typing import Dict, List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "Parcel Intelligence API"
    ENV: str = "development"

    # Public dashboard URL (share links, invite links)
    APP_URL: str = Field("https://app.parcelintel.com", env="APP_URL")

    # -------------------------------------------------
    # Frontend Domains
    # -------------------------------------------------
    FRONTEND_DOMAIN: Optional[str] = Field(None, env="FRONTEND_DOMAIN")

    PARCEL_INTEL_DOMAINS: List[str] = [
        "https://parcelintel.com",
        "https://www.parcelintel.com",
        "https://app.parcelintel.com",
    ]

    # -------------------------------------------------
    # CORS (auto-built below)
    # -------------------------------------------------
    BACKEND_CORS_ORIGINS: List[str] = []

    # -------------------------------------------------
    # Supabase (Primary DB & Auth)
    # -------------------------------------------------
    SUPABASE_URL: Optional[str] = Field(None, env="SUPABASE_URL")
    SUPABASE_ANON_KEY: Optional[str] = Field(None, env="SUPABASE_ANON_KEY")
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = Field(None, env="SUPABASE_SERVICE_ROLE_KEY")

    # -------------------------------------------------
    # SMTP Email Notifications
    # -------------------------------------------------
    SMTP_HOST: Optional[str] = Field(None, env="SMTP_HOST")
    SMTP_PORT: Optional[int] = Field(None, env="SMTP_PORT")
    SMTP_USER: Optional[str] = Field(None, env="SMTP_USER")
    SMTP_PASS: Optional[str] = Field(None, env="SMTP_PASS")

    # Ops webhook (Slack / Discord) for billing plan changes
    BILLING_WEBHOOK_URL: Optional[str] = Field(None, env="BILLING_WEBHOOK_URL")

    # -------------------------------------------------
    # Stripe Payment Processing
    # -------------------------------------------------
    STRIPE_SECRET_KEY: Optional[str] = Field(None, env="STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET: Optional[str] = Field(None, env="STRIPE_WEBHOOK_SECRET")

    # Stripe price id → subscription tier
    STRIPE_PRICE_TIER_MAP: Dict[str, str] = Field(
        default_factory=lambda: {
            "price_free": "free",
            "price_pro": "pro",
            "price_pro_plus": "pro_plus",
            "price_portfolio": "portfolio",
            "price_enterprise": "enterprise",
        },
        env="STRIPE_PRICE_TIER_MAP",
    )

    STRIPE_PRICE_HOME: Optional[str] = Field(None, env="STRIPE_PRICE_HOME")
    STRIPE_PRICE_STUDIO: Optional[str] = Field(None, env="STRIPE_PRICE_STUDIO")
    STRIPE_PRICE_PORTFOLIO: Optional[str] = Field(None, env="STRIPE_PRICE_PORTFOLIO")

    # -------------------------------------------------
    # Entitlements
    # -------------------------------------------------
    ENTITLEMENT_CACHE_TTL_SECONDS: int = Field(300, env="ENTITLEMENT_CACHE_TTL_SECONDS", description="Entitlement result cache TTL (default: 5 minutes)")

    # Features switched off for every workspace (kill switch)
    DISABLED_FEATURES: List[str] = Field(default_factory=list, env="DISABLED_FEATURES")

    # -------------------------------------------------
    # Sharing & Invites
    # -------------------------------------------------
    SHARE_LINK_DEFAULT_EXPIRY_DAYS: int = Field(7, env="SHARE_LINK_DEFAULT_EXPIRY_DAYS")
    SHARE_LINK_MAX_EXPIRY_DAYS: int = Field(90, env="SHARE_LINK_MAX_EXPIRY_DAYS")
    SHARE_LINK_DEFAULT_RATE_LIMIT: int = Field(120, env="SHARE_LINK_DEFAULT_RATE_LIMIT", description="Views per hour per link when the link sets no limit")

    INVITE_EXPIRY_DAYS: int = Field(7, env="INVITE_EXPIRY_DAYS")

    # -------------------------------------------------
    # Background jobs
    # -------------------------------------------------
    ENABLE_SCHEDULER: bool = Field(False, env="ENABLE_SCHEDULER")

    # -------------------------------------------------
    # Model Config
    # -------------------------------------------------
    class Config:
        case_sensitive = True


# Instantiate settings
settings = Settings()

# -------------------------------------------------
# Build CORS list dynamically after loading settings
# -------------------------------------------------
cors_origins = []

# 1) add custom frontend domain
if settings.FRONTEND_DOMAIN:
    domain = settings.FRONTEND_DOMAIN
    if not domain.startswith("http"):
        domain = f"https://{domain}"
    cors_origins.append(domain.rstrip("/"))

# 2) add product domains
cors_origins.extend([d.rstrip("/") for d in settings.PARCEL_INTEL_DOMAINS])

# 3) remove duplicates
settings.BACKEND_CORS_ORIGINS = sorted(list(set(cors_origins)))
