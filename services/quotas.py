"""
Plan quotas: reports per UTC calendar month and seats.

Both checks fail closed: if the counts cannot be read the action is refused
with reason UNKNOWN.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from core.errors import api_error
from core.logging_config import logger
from core.plans import UNLIMITED, get_plan_for_tier
from core.supabase_client import get_supabase_client
from core.utils import utcnow
from models.enums import InviteStatus, MemberStatus
from services.entitlements import get_billing_state


class QuotaCheckResult(BaseModel):
    ok: bool
    reason: Optional[str] = None
    current: int = 0
    pending: int = 0
    limit: int = 0
    percentage: float = 0.0


QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
UNKNOWN = "UNKNOWN"


def _percentage(current: int, limit: int) -> float:
    if limit == UNLIMITED or limit <= 0:
        return 0.0
    return round(min(100.0, current / limit * 100), 1)


def month_start_utc(now: Optional[datetime] = None) -> datetime:
    now = now or utcnow()
    return datetime(now.year, now.month, 1, tzinfo=timezone.utc)


# ============================================================
# Reports per month
# ============================================================
def count_reports_this_month(workspace_id: str) -> int:
    client = get_supabase_client()
    result = (
        client.table("reports")
        .select("id", count="exact")
        .eq("workspace_id", workspace_id)
        .gte("created_at", month_start_utc().isoformat())
        .execute()
    )
    return result.count if result.count is not None else len(result.data or [])


def can_create_report(workspace_id: str) -> QuotaCheckResult:
    try:
        billing = get_billing_state(workspace_id)
        limit = get_plan_for_tier(billing.tier.value).limits.reports_per_month
        current = count_reports_this_month(workspace_id)
    except Exception as e:
        logger.error(f"Report quota lookup failed for {workspace_id}: {e}")
        return QuotaCheckResult(ok=False, reason=UNKNOWN)

    if limit == UNLIMITED:
        return QuotaCheckResult(ok=True, current=current, limit=limit)

    ok = current < limit
    return QuotaCheckResult(
        ok=ok,
        reason=None if ok else QUOTA_EXCEEDED,
        current=current,
        limit=limit,
        percentage=_percentage(current, limit),
    )


def assert_can_create_report(workspace_id: str) -> QuotaCheckResult:
    quota = can_create_report(workspace_id)
    if not quota.ok:
        logger.warning(f"Report quota refused for {workspace_id}: {quota.reason} ({quota.current}/{quota.limit})")
        raise api_error(
            403,
            "QUOTA_EXCEEDED",
            "Monthly report limit reached for this workspace",
            reason=quota.reason,
            current=quota.current,
            limit=quota.limit,
        )
    return quota


# ============================================================
# Seats
# ============================================================
def count_seats(workspace_id: str) -> tuple:
    """(active members, pending invites)"""
    client = get_supabase_client()

    members = (
        client.table("workspace_members")
        .select("id", count="exact")
        .eq("workspace_id", workspace_id)
        .eq("status", MemberStatus.active.value)
        .execute()
    )
    invites = (
        client.table("workspace_invites")
        .select("id", count="exact")
        .eq("workspace_id", workspace_id)
        .eq("status", InviteStatus.pending.value)
        .execute()
    )

    active = members.count if members.count is not None else len(members.data or [])
    pending = invites.count if invites.count is not None else len(invites.data or [])
    return active, pending


def can_invite_members(workspace_id: str, additional: int = 1) -> QuotaCheckResult:
    try:
        billing = get_billing_state(workspace_id)
        limit = get_plan_for_tier(billing.tier.value).limits.user_limit
        active, pending = count_seats(workspace_id)
    except Exception as e:
        logger.error(f"Seat quota lookup failed for {workspace_id}: {e}")
        return QuotaCheckResult(ok=False, reason=UNKNOWN)

    if limit == UNLIMITED:
        return QuotaCheckResult(ok=True, current=active, pending=pending, limit=limit)

    used = active + pending
    ok = used + additional <= limit
    return QuotaCheckResult(
        ok=ok,
        reason=None if ok else QUOTA_EXCEEDED,
        current=active,
        pending=pending,
        limit=limit,
        percentage=_percentage(used, limit),
    )


def assert_can_invite_members(workspace_id: str, additional: int = 1) -> QuotaCheckResult:
    quota = can_invite_members(workspace_id, additional)
    if not quota.ok:
        logger.warning(
            f"Seat quota refused for {workspace_id}: {quota.reason} "
            f"({quota.current} active + {quota.pending} pending / {quota.limit})"
        )
        raise api_error(
            403,
            "ENTITLEMENT_LIMIT_REACHED",
            "Seat limit reached for this workspace plan",
            reason=quota.reason,
            current=quota.current,
            pending=quota.pending,
            limit=quota.limit,
        )
    return quota
