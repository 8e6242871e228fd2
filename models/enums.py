from enum import Enum


class BaseStrEnum(str, Enum):
    """
    Base enum that serializes cleanly to a string
    and provides a .list() method for UI dropdowns.
    """

    def __str__(self):
        return str(self.value)

    @classmethod
    def list(cls):
        return [item.value for item in cls]


# -----------------------------------------------------
# SUBSCRIPTION TIER
# -----------------------------------------------------
class SubscriptionTier(BaseStrEnum):
    """Workspace subscription tier, ascending order matters (see core.tiers)."""

    free = "free"
    pro = "pro"
    pro_plus = "pro_plus"
    portfolio = "portfolio"
    enterprise = "enterprise"


# -----------------------------------------------------
# BILLING STATUS
# -----------------------------------------------------
class BillingStatus(BaseStrEnum):
    active = "active"
    cancelled = "cancelled"
    past_due = "past_due"
    unpaid = "unpaid"
    trial = "trial"


# -----------------------------------------------------
# ROLES
# -----------------------------------------------------
class WorkspaceRole(BaseStrEnum):
    """Role of a user inside one workspace."""

    owner = "owner"
    admin = "admin"
    member = "member"
    viewer = "viewer"


class PlatformRole(BaseStrEnum):
    """Role of a user across the whole platform (staff accounts)."""

    user = "user"
    support = "support"
    super_admin = "super_admin"


class MemberStatus(BaseStrEnum):
    active = "active"
    suspended = "suspended"


class InviteStatus(BaseStrEnum):
    pending = "pending"
    accepted = "accepted"
    expired = "expired"
    revoked = "revoked"


# -----------------------------------------------------
# ENTITLEMENT DENIAL REASON
# -----------------------------------------------------
class DenialReason(BaseStrEnum):
    TIER_INSUFFICIENT = "TIER_INSUFFICIENT"
    FEATURE_DISABLED = "FEATURE_DISABLED"
    GRACE_PERIOD_EXPIRED = "GRACE_PERIOD_EXPIRED"
    SUBSCRIPTION_INACTIVE = "SUBSCRIPTION_INACTIVE"
    TRIAL_NOT_STARTED = "TRIAL_NOT_STARTED"
    FEATURE_UNAVAILABLE = "FEATURE_UNAVAILABLE"
    SYSTEM_MAINTENANCE = "SYSTEM_MAINTENANCE"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


# -----------------------------------------------------
# REPORTS & SHARING
# -----------------------------------------------------
class ReportStatus(BaseStrEnum):
    draft = "draft"
    published = "published"
    archived = "archived"


class ShareRole(BaseStrEnum):
    viewer = "viewer"
    commenter = "commenter"
    editor = "editor"


class SharePermission(BaseStrEnum):
    view = "view"
    comment = "comment"
    download = "download"
    share = "share"


class ShareEventType(BaseStrEnum):
    created = "created"
    viewed = "viewed"
    access_denied = "access_denied"
    revoked = "revoked"
    expired = "expired"


# -----------------------------------------------------
# CONTACTS
# -----------------------------------------------------
class ContactType(BaseStrEnum):
    hoa_member = "hoa_member"
    homeowner = "homeowner"
    external = "external"
    vendor = "vendor"


class VerificationStatus(BaseStrEnum):
    verified = "verified"
    pending = "pending"
    unverified = "unverified"


class ContactMembershipStatus(BaseStrEnum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"


# -----------------------------------------------------
# AUDIT
# -----------------------------------------------------
class WorkspaceAuditAction(BaseStrEnum):
    created = "workspace.created"
    updated = "workspace.updated"
    deleted = "workspace.deleted"
    member_added = "workspace.member_added"
    member_removed = "workspace.member_removed"
    member_role_changed = "workspace.member_role_changed"
    plan_upgraded = "workspace.plan_upgraded"
    plan_downgraded = "workspace.plan_downgraded"
    entitlement_granted = "workspace.entitlement_granted"
    entitlement_denied = "workspace.entitlement_denied"
    entitlement_revoked = "workspace.entitlement_revoked"
    billing_sync = "workspace.billing_sync"
    settings_updated = "workspace.settings_updated"


class AuditResourceType(BaseStrEnum):
    workspace = "workspace"
    member = "member"
    entitlement = "entitlement"
    billing = "billing"


class AuditStatus(BaseStrEnum):
    success = "success"
    denied = "denied"
    failed = "failed"


class ActivityType(BaseStrEnum):
    """User-facing activity feed entries (workspace_activities)."""

    create_workspace = "create_workspace"
    update_workspace = "update_workspace"
    remove_member = "remove_member"
    invite_member = "invite_member"
    accept_invitation = "accept_invitation"
    parcel_selected = "parcel_selected"
    report_created = "report_created"
    report_shared = "report_shared"
    share_link_created = "share_link_created"
    contacts_imported = "contacts_imported"
