# -------------------------
# Workspace Models
# -------------------------
from .workspace import (
    WorkspaceAccess,
    WorkspaceCreate,
    WorkspaceRead,
    WorkspaceUpdate,
    MemberRead,
    InviteCreate,
    InviteRead,
)

# -------------------------
# Billing / Entitlement Models
# -------------------------
from .billing import BillingState, PlanDefinition, UpgradeOption
from .entitlement import EntitlementCheckResult

# -------------------------
# Report / Sharing Models
# -------------------------
from .report import ReportCreate, ReportRead
from .share_link import ShareLinkCreate, ShareLinkRead

# -------------------------
# Contacts / Parcels
# -------------------------
from .contact import ContactCreate, ContactRead, ContactUpdate
from .parcel import ParcelRead, SavedParcelCreate, SavedParcelRead

# -------------------------
# Enums
# -------------------------
from .enums import (
    SubscriptionTier,
    BillingStatus,
    WorkspaceRole,
    ShareRole,
)

__all__ = [
    # workspaces
    "WorkspaceAccess",
    "WorkspaceCreate",
    "WorkspaceRead",
    "WorkspaceUpdate",
    "MemberRead",
    "InviteCreate",
    "InviteRead",

    # billing / entitlements
    "BillingState",
    "PlanDefinition",
    "UpgradeOption",
    "EntitlementCheckResult",

    # reports / sharing
    "ReportCreate",
    "ReportRead",
    "ShareLinkCreate",
    "ShareLinkRead",

    # contacts / parcels
    "ContactCreate",
    "ContactRead",
    "ContactUpdate",
    "ParcelRead",
    "SavedParcelCreate",
    "SavedParcelRead",

    # enums
    "SubscriptionTier",
    "BillingStatus",
    "WorkspaceRole",
    "ShareRole",
]
