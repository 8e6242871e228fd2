"""
Activity metadata sanitizer.

Each activity type has an allow list of metadata keys. Anything else is
dropped so tokens, PII and large payloads never reach the activity feed.
"""

import json
from typing import Any, Optional

from core.logging_config import logger
from models.enums import ActivityType


MAX_STRING_LENGTH = 1000
MAX_TOKEN_PREFIX_LENGTH = 16
TOKEN_PREFIX_CUT = 9

ALLOWED_KEYS_BY_TYPE = {
    ActivityType.create_workspace.value: {"workspace_id", "workspace_name"},
    ActivityType.update_workspace.value: {"updated_fields"},
    ActivityType.remove_member.value: {"workspace_id", "member_id", "member_email"},
    ActivityType.invite_member.value: {"workspace_id", "invited_email", "role"},
    ActivityType.accept_invitation.value: {"workspace_id"},
    ActivityType.parcel_selected.value: {
        "parcel_id", "apn", "source", "confidence", "request_id", "address",
    },
    ActivityType.report_created.value: {
        "report_id", "parcel_id", "address", "schema_version",
    },
    ActivityType.report_shared.value: {
        "report_id", "shared_with", "role_granted", "channel", "message_id",
    },
    ActivityType.share_link_created.value: {
        "share_link_id", "report_id", "token_prefix", "expires_at", "max_views", "requires_auth",
    },
    ActivityType.contacts_imported.value: {
        "upload_id", "imported", "skipped", "failed", "file_name",
    },
}


def _sanitize_value(value: Any) -> Any:
    if value is None:
        return None

    # bool before int: bool is an int subclass
    if isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        return value[:MAX_STRING_LENGTH]

    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, default=str)[:MAX_STRING_LENGTH]

    logger.warning(f"Unknown activity metadata value type: {type(value).__name__}")
    return None


def sanitize_activity_meta(activity_type: str, meta: Optional[dict]) -> Optional[dict]:
    """
    Filter and normalise metadata for one activity.

    Raises:
        ValueError: a full share token was passed for a share_link_created activity
    """
    if not meta or not isinstance(meta, dict):
        return None

    allowed = ALLOWED_KEYS_BY_TYPE.get(str(activity_type))
    if allowed is None:
        logger.warning(f"Unknown activity type: {activity_type}")
        return {}

    is_share_link = str(activity_type) == ActivityType.share_link_created.value

    # Checked before filtering so the mistake is loud, not silently dropped
    if is_share_link and (meta.get("token") or meta.get("full_token")):
        logger.error("SECURITY: attempted to log a full share token in activity metadata")
        raise ValueError("Full tokens cannot be logged")

    sanitized = {}
    for key, value in meta.items():
        if key not in allowed:
            logger.debug(f"Dropping disallowed metadata key '{key}' for {activity_type}")
            continue
        sanitized[key] = _sanitize_value(value)

    prefix = sanitized.get("token_prefix")
    if is_share_link and isinstance(prefix, str) and len(prefix) > MAX_TOKEN_PREFIX_LENGTH:
        sanitized["token_prefix"] = prefix[:TOKEN_PREFIX_CUT]

    return sanitized
