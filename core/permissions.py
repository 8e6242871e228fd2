# ============================================
# CENTRALIZED WORKSPACE ROLE → PERMISSIONS MAP
# ============================================
from typing import Optional


ROLE_LEVELS = {
    "owner": 4,
    "admin": 3,
    "member": 2,
    "viewer": 1,
}


_VIEWER = [
    "workspace:read",
    "members:read",
    "reports:read",
    "share_links:read",
    "contacts:read",
    "parcels:read",
    "billing:read",
    "activities:read",
]

_MEMBER = _VIEWER + [
    "share_links:create",
    "contacts:write",
    "contacts:import",
    "parcels:save",
]

_ADMIN = _MEMBER + [
    "reports:create",
    "reports:update",
    "reports:delete",
    "share_links:manage",
    "contacts:delete",
    "contacts:permissions",
    "members:invite",
    "members:manage",
    "workspace:update",
    "audit:read",
]

_OWNER = _ADMIN + [
    "workspace:delete",
    "billing:manage",
    "members:manage_owners",
]


ROLE_PERMISSIONS = {

    # =====================================================
    # OWNER: everything, including billing and deletion
    # =====================================================
    "owner": _OWNER,

    # =====================================================
    # ADMIN: manage members, reports, settings
    # =====================================================
    "admin": _ADMIN,

    # =====================================================
    # MEMBER: day to day work, no destructive actions
    # =====================================================
    "member": _MEMBER,

    # =====================================================
    # VIEWER: read only
    # =====================================================
    "viewer": _VIEWER,
}


def role_level(role: Optional[str]) -> int:
    return ROLE_LEVELS.get(role or "", 0)


def has_role_at_least(role: Optional[str], required_role: str) -> bool:
    return role_level(role) >= role_level(required_role)


def role_has_permission(role: Optional[str], permission: str) -> bool:
    return permission in ROLE_PERMISSIONS.get(role or "", [])


def minimum_role_for(permission: str) -> Optional[str]:
    """Lowest role that holds the permission (used for error codes)."""
    for role in sorted(ROLE_LEVELS, key=ROLE_LEVELS.get):
        if permission in ROLE_PERMISSIONS[role]:
            return role
    return None
