"""
Report share links.

A link is an unguessable token (32 random bytes, URL-safe) bound to one
report. The full token is returned once, at creation; afterwards only the
first characters ever appear in logs or activity metadata.

Public resolution checks, in order: existence, revocation, expiry, view
cap, auth requirement, referer domain, password, hourly rate limit. Every
denial after the lookup is recorded as an ``access_denied`` event.
"""

import secrets
import string
from datetime import datetime, timedelta
from typing import List, Optional
from urllib.parse import urlparse

import bcrypt
from fastapi import Request

from core.config import settings
from core.errors import api_error, handle_supabase_error, not_found
from core.logging_config import logger, mask_token
from core.notifications import send_share_email
from core.rate_limiter import check_rate_limit
from core.supabase_client import get_supabase_client
from core.utils import get_request_context, parse_datetime, utcnow, utcnow_iso
from dependencies.auth import CurrentUser
from models.enums import ActivityType, SharePermission, ShareEventType, ShareRole
from models.share_link import ShareLinkCreate
from models.workspace import WorkspaceAccess
from services.audit import audit_share_link_created, audit_share_link_revoked, log_activity
from services.contacts import can_share_contact, fetch_contact
from services.reports import fetch_report


SHORT_CODE_ALPHABET = string.ascii_lowercase + string.digits
SHORT_CODE_LENGTH = 8
TOKEN_PREFIX_LENGTH = 8
RATE_LIMIT_WINDOW_SECONDS = 3600
VIEW_CLAIM_ATTEMPTS = 3

ROLE_PERMISSIONS = {
    ShareRole.viewer.value: [SharePermission.view.value],
    ShareRole.commenter.value: [SharePermission.view.value, SharePermission.comment.value],
    ShareRole.editor.value: [
        SharePermission.view.value,
        SharePermission.comment.value,
        SharePermission.download.value,
    ],
}

# Roles above viewer need the collaboration feature
COLLABORATION_ROLES = {ShareRole.commenter.value, ShareRole.editor.value}


# ============================================================
# Tokens & passwords
# ============================================================
def generate_token() -> str:
    return secrets.token_urlsafe(32)


def generate_short_code() -> str:
    return "".join(secrets.choice(SHORT_CODE_ALPHABET) for _ in range(SHORT_CODE_LENGTH))


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.error("Stored share link password hash is malformed")
        return False


def share_url(token: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/share/{token}"


def to_public_link(row: dict) -> dict:
    """Strip secrets from a share_links row."""
    public = {k: v for k, v in row.items() if k not in ("token", "password_hash")}
    public["has_password"] = bool(row.get("password_hash"))
    return public


# ============================================================
# Events
# ============================================================
def log_share_event(
    share_link_id: str,
    event_type: str,
    actor_user_id: Optional[str] = None,
    request: Optional[Request] = None,
    reason: Optional[str] = None,
) -> None:
    context = get_request_context(request)
    try:
        client = get_supabase_client()
        client.table("share_link_events").insert({
            "share_link_id": share_link_id,
            "event_type": event_type,
            "actor_user_id": actor_user_id,
            "actor_ip_address": context.get("ip_address"),
            "actor_user_agent": context.get("user_agent"),
            "reason": reason,
            "created_at": utcnow_iso(),
        }).execute()
    except Exception as e:
        logger.error(f"Failed to log share link event {event_type} for {share_link_id}: {e}")


def get_share_link_events(share_link_id: str) -> List[dict]:
    client = get_supabase_client()
    result = (
        client.table("share_link_events")
        .select("*")
        .eq("share_link_id", share_link_id)
        .order("created_at", desc=True)
        .execute()
    )
    return result.data or []


# ============================================================
# Create
# ============================================================
def create_share_link(
    access: WorkspaceAccess,
    report_id: str,
    payload: ShareLinkCreate,
    request: Optional[Request] = None,
) -> dict:
    report = fetch_report(access.workspace_id, report_id)
    if report is None:
        raise not_found("Report not found")

    recipient_email = str(payload.recipient_email).lower() if payload.recipient_email else None

    if payload.recipient_contact_id:
        contact = fetch_contact(access.workspace_id, payload.recipient_contact_id)
        if contact is None:
            raise not_found("Contact not found")
        if not access.is_admin and not can_share_contact(access.user_id, contact["id"]):
            raise api_error(403, "CONTACT_SHARE_DENIED", "You do not have permission to share with this contact")
        recipient_email = recipient_email or contact.get("email")

    token = generate_token()
    now = utcnow()
    role = payload.access_role.value

    row = {
        "workspace_id": access.workspace_id,
        "report_id": report_id,
        "token": token,
        "short_code": generate_short_code(),
        "created_by": access.user_id,
        "recipient_contact_id": payload.recipient_contact_id,
        "recipient_email": recipient_email,
        "access_role": role,
        "requires_auth": payload.requires_auth,
        "expires_at": (now + timedelta(days=payload.expires_in_days)).isoformat(),
        "max_views": payload.max_views,
        "view_count": 0,
        "password_hash": hash_password(payload.password) if payload.password else None,
        "allowed_domains": payload.allowed_domains,
        "rate_limit_per_hour": payload.rate_limit_per_hour,
        "created_at": now.isoformat(),
    }

    client = get_supabase_client()
    try:
        result = client.table("share_links").insert(row).execute()
        link = result.data[0]

        permissions = ROLE_PERMISSIONS[role]
        client.table("share_link_permissions").insert([
            {"share_link_id": link["id"], "permission": p, "granted": True}
            for p in permissions
        ]).execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create share link", 500)

    log_share_event(link["id"], ShareEventType.created.value, access.user_id, request)
    log_activity(access.user_id, access.workspace_id, ActivityType.share_link_created.value, {
        "share_link_id": link["id"],
        "report_id": report_id,
        "token_prefix": token[:TOKEN_PREFIX_LENGTH],
        "expires_at": row["expires_at"],
        "max_views": payload.max_views,
        "requires_auth": payload.requires_auth,
    })
    audit_share_link_created(access.user_id, access.workspace_id, link["id"], report_id, role)

    logger.info(f"Share link {link['id']} ({mask_token(token)}) created for report {report_id}")

    if payload.notify_recipient and recipient_email:
        send_share_notification(
            link, token, recipient_email, report.get("name", "Parcel report"),
            payload.recipient_name, payload.message,
        )
        log_activity(access.user_id, access.workspace_id, ActivityType.report_shared.value, {
            "report_id": report_id,
            "shared_with": recipient_email,
            "role_granted": role,
            "channel": "email",
        })

    return {
        **to_public_link({**row, **link}),
        "token": token,
        "url": share_url(token),
        "permissions": permissions,
    }


# ============================================================
# Resolve (public)
# ============================================================
def get_share_link_by_token(token: str) -> Optional[dict]:
    client = get_supabase_client()
    result = client.table("share_links").select("*").eq("token", token).limit(1).execute()
    return result.data[0] if result.data else None


def get_share_link_permissions(share_link_id: str) -> List[str]:
    client = get_supabase_client()
    result = (
        client.table("share_link_permissions")
        .select("permission, granted")
        .eq("share_link_id", share_link_id)
        .execute()
    )
    return [row["permission"] for row in result.data or [] if row.get("granted", True)]


def has_permission(share_link_id: str, permission: str) -> bool:
    client = get_supabase_client()
    result = (
        client.table("share_link_permissions")
        .select("granted")
        .eq("share_link_id", share_link_id)
        .eq("permission", permission)
        .limit(1)
        .execute()
    )
    return bool(result.data and result.data[0].get("granted", True))


def _referer_allowed(allowed_domains: List[str], referer: Optional[str]) -> bool:
    if not referer:
        return False
    host = (urlparse(referer).hostname or "").lower()
    if not host:
        return False
    return any(host == d or host.endswith(f".{d}") for d in allowed_domains)


def _deny(link: dict, status_code: int, reason: str, message: str, user: Optional[CurrentUser], request, headers=None):
    log_share_event(
        link["id"],
        ShareEventType.access_denied.value,
        user.id if user else None,
        request,
        reason=reason,
    )
    logger.info(f"Share link {link['id']} denied: {reason}")
    return api_error(status_code, reason, message, headers=headers)


def resolve_share_link(
    token: str,
    user: Optional[CurrentUser],
    request: Optional[Request] = None,
    password: Optional[str] = None,
) -> dict:
    link = get_share_link_by_token(token)
    if link is None:
        logger.info(f"Share link {mask_token(token)} not found")
        raise not_found("Share link not found")

    now = utcnow()

    if link.get("revoked_at"):
        raise _deny(link, 410, "revoked", "This share link has been revoked", user, request)

    expires_at = parse_datetime(link.get("expires_at"))
    if expires_at and expires_at < now:
        raise _deny(link, 410, "expired", "This share link has expired", user, request)

    max_views = link.get("max_views")
    if max_views and (link.get("view_count") or 0) >= max_views:
        raise _deny(link, 410, "max_views_reached", "This share link has reached its view limit", user, request)

    if link.get("requires_auth") and user is None:
        raise _deny(link, 401, "auth_required", "Sign in to view this report", user, request)

    allowed_domains = link.get("allowed_domains")
    if allowed_domains:
        referer = request.headers.get("referer") if request else None
        if not _referer_allowed(allowed_domains, referer):
            raise _deny(link, 403, "domain_denied", "This link cannot be opened from this site", user, request)

    if link.get("password_hash"):
        if not password:
            raise _deny(link, 401, "password_required", "This share link is password protected", user, request)
        if not verify_password(password, link["password_hash"]):
            raise _deny(link, 403, "invalid_password", "Incorrect password", user, request)

    rate_limit = link.get("rate_limit_per_hour") or settings.SHARE_LINK_DEFAULT_RATE_LIMIT
    allowed, _ = check_rate_limit(f"share_link:{link['id']}", rate_limit, RATE_LIMIT_WINDOW_SECONDS)
    if not allowed:
        raise _deny(
            link, 429, "rate_limited", "Too many views for this link, try again later", user, request,
            headers={"Retry-After": str(RATE_LIMIT_WINDOW_SECONDS)},
        )

    report = fetch_report(link["workspace_id"], link["report_id"])
    if report is None:
        raise not_found("Report not found")

    if not track_view(link, user, request):
        raise _deny(link, 410, "max_views_reached", "This share link has reached its view limit", user, request)

    return {
        "share_link": {
            "id": link["id"],
            "access_role": link.get("access_role"),
            "expires_at": link.get("expires_at"),
            "permissions": get_share_link_permissions(link["id"]),
        },
        "report": report,
    }


def _fetch_view_counter(share_link_id: str) -> Optional[dict]:
    client = get_supabase_client()
    result = client.table("share_links").select("id, view_count").eq("id", share_link_id).limit(1).execute()
    return result.data[0] if result.data else None


def track_view(link: dict, user: Optional[CurrentUser], request: Optional[Request] = None) -> bool:
    """
    Claim one view with a compare-and-set on view_count.
    A write only lands while the stored count still equals the count this
    request read, so concurrent opens cannot push a link past max_views.
    Returns False when another view took the last slot first.
    """
    client = get_supabase_client()
    max_views = link.get("max_views")
    current = link.get("view_count")

    for _ in range(VIEW_CLAIM_ATTEMPTS):
        if max_views and (current or 0) >= max_views:
            return False

        now = utcnow_iso()
        updates = {"view_count": (current or 0) + 1, "last_viewed_at": now}
        if not link.get("first_viewed_at"):
            updates["first_viewed_at"] = now

        query = client.table("share_links").update(updates).eq("id", link["id"])
        if current is None:
            query = query.is_("view_count", "null")
        else:
            query = query.eq("view_count", current)

        try:
            result = query.execute()
        except Exception as e:
            logger.error(f"Failed to record view for share link {link['id']}: {e}")
            break

        if result.data:
            break

        counter = _fetch_view_counter(link["id"])
        if counter is None:
            return False
        current = counter.get("view_count")
    else:
        logger.warning(f"View count for share link {link['id']} kept changing; view not counted")

    log_share_event(link["id"], ShareEventType.viewed.value, user.id if user else None, request)
    return True


# ============================================================
# Listing & revocation
# ============================================================
def list_workspace_links(workspace_id: str) -> List[dict]:
    client = get_supabase_client()
    result = (
        client.table("share_links")
        .select("*")
        .eq("workspace_id", workspace_id)
        .order("created_at", desc=True)
        .execute()
    )
    return [to_public_link(row) for row in result.data or []]


def list_report_links(workspace_id: str, report_id: str) -> List[dict]:
    client = get_supabase_client()
    result = (
        client.table("share_links")
        .select("*")
        .eq("workspace_id", workspace_id)
        .eq("report_id", report_id)
        .order("created_at", desc=True)
        .execute()
    )
    return [to_public_link(row) for row in result.data or []]


def get_workspace_link(workspace_id: str, share_link_id: str) -> dict:
    client = get_supabase_client()
    result = (
        client.table("share_links")
        .select("*")
        .eq("id", share_link_id)
        .eq("workspace_id", workspace_id)
        .limit(1)
        .execute()
    )
    if not result.data:
        raise not_found("Share link not found")
    return result.data[0]


def require_link_manager(access: WorkspaceAccess, link: dict) -> None:
    """Creator of the link or a workspace admin."""
    if link.get("created_by") != access.user_id and not access.is_admin:
        raise api_error(403, "WORKSPACE_ADMIN_REQUIRED", "Only the link creator or an admin can manage this link")


def revoke_share_link(access: WorkspaceAccess, share_link_id: str, request: Optional[Request] = None) -> dict:
    link = get_workspace_link(access.workspace_id, share_link_id)
    require_link_manager(access, link)

    if link.get("revoked_at"):
        return to_public_link(link)

    updates = {"revoked_at": utcnow_iso(), "revoked_by": access.user_id}
    client = get_supabase_client()
    try:
        result = client.table("share_links").update(updates).eq("id", share_link_id).execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to revoke share link", 500)

    log_share_event(share_link_id, ShareEventType.revoked.value, access.user_id, request)
    audit_share_link_revoked(access.user_id, access.workspace_id, share_link_id)

    return to_public_link(result.data[0] if result.data else {**link, **updates})


def record_expired_links(since: datetime, until: Optional[datetime] = None) -> int:
    """Log an ``expired`` event for live links whose expiry fell in [since, until)."""
    until = until or utcnow()
    client = get_supabase_client()
    result = (
        client.table("share_links")
        .select("id")
        .is_("revoked_at", "null")
        .gte("expires_at", since.isoformat())
        .lt("expires_at", until.isoformat())
        .execute()
    )
    links = result.data or []
    for link in links:
        log_share_event(link["id"], ShareEventType.expired.value)
    return len(links)


# ============================================================
# Notifications
# ============================================================
def send_share_notification(
    link: dict,
    token: str,
    recipient_email: str,
    report_name: str,
    recipient_name: Optional[str] = None,
    message: Optional[str] = None,
) -> bool:
    """Queue a share_notifications row, then try to email it."""
    subject = f"{recipient_name or 'You'} have been shared a Parcel Report"
    client = get_supabase_client()

    notification_id = None
    try:
        result = client.table("share_notifications").insert({
            "share_link_id": link["id"],
            "recipient_email": recipient_email,
            "recipient_name": recipient_name,
            "subject": subject,
            "body": message,
            "status": "pending",
            "created_at": utcnow_iso(),
        }).execute()
        if result.data:
            notification_id = result.data[0].get("id")
    except Exception as e:
        logger.error(f"Failed to queue share notification for link {link['id']}: {e}")

    sent = send_share_email(recipient_email, report_name, token, message)

    if notification_id:
        try:
            client.table("share_notifications").update({
                "status": "sent" if sent else "failed",
                "sent_at": utcnow_iso() if sent else None,
            }).eq("id", notification_id).execute()
        except Exception as e:
            logger.error(f"Failed to update share notification {notification_id}: {e}")

    return sent
