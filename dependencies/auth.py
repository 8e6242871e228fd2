from typing import Optional
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from supabase import Client

from core.errors import api_error, unauthorized
from core.logging_config import logger
from core.supabase_client import get_supabase_client
from models.enums import PlatformRole


# auto_error=False: we raise our own structured 401 instead of FastAPI's
bearer_scheme = HTTPBearer(auto_error=False)


# ============================================================
# Current User Model (backend identity)
# ============================================================
class CurrentUser(BaseModel):
    id: str
    auth_user_id: str               # Supabase Auth UID
    email: str
    platform_role: PlatformRole = PlatformRole.user

    full_name: Optional[str] = None

    @property
    def is_super_admin(self) -> bool:
        return self.platform_role == PlatformRole.super_admin

    @property
    def is_support(self) -> bool:
        return self.platform_role == PlatformRole.support


# ============================================================
# AUTH DECODING (Supabase: validates JWT + fetches metadata)
# ============================================================
def resolve_user_from_token(token: str) -> CurrentUser:
    """Validate a bearer token with Supabase GoTrue. Raises 401 on any failure."""
    client: Client = get_supabase_client()
    if not client:
        raise api_error(500, "INTERNAL_ERROR", "Supabase client not configured")

    try:
        auth_resp = client.auth.get_user(token)
    except Exception as e:
        logger.info(f"Token validation failed: {e}")
        raise unauthorized("Invalid or expired authentication token")

    if not auth_resp or not auth_resp.user:
        raise unauthorized("Invalid or expired authentication token")

    auth_user = auth_resp.user
    metadata = auth_user.user_metadata or {}

    if not auth_user.email:
        raise unauthorized("Invalid or expired authentication token")

    # Unknown platform roles downgrade to a normal user
    platform_role = metadata.get("platform_role", PlatformRole.user.value)
    if platform_role not in PlatformRole.list():
        platform_role = PlatformRole.user.value

    return CurrentUser(
        id=auth_user.id,
        auth_user_id=auth_user.id,
        email=auth_user.email,
        platform_role=platform_role,
        full_name=metadata.get("full_name"),
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    if not credentials or not credentials.credentials:
        raise unauthorized()

    return resolve_user_from_token(credentials.credentials)


# ============================================================
# OPTIONAL AUTHENTICATION (public endpoints, e.g. share links)
# ============================================================
def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[CurrentUser]:
    """
    Returns CurrentUser if a valid token was provided, None otherwise.
    Never raises for missing / invalid tokens.
    """
    if not credentials or not credentials.credentials:
        return None

    try:
        return resolve_user_from_token(credentials.credentials)
    except HTTPException:
        # Invalid token - treat as anonymous
        return None
