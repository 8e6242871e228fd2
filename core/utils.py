# core/utils.py

import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import Request

from core.errors import validation_error


def sanitize(data: dict) -> dict:
    """
    Sanitize dictionary data:
    - Empty strings → None
    - Preserve booleans, None values
    - Strip string whitespace
    """
    clean = {}

    for k, v in data.items():
        if isinstance(v, str):
            stripped = v.strip()
            clean[k] = stripped or None
            continue

        clean[k] = v

    return clean


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    return utcnow().isoformat()


def parse_datetime(value) -> Optional[datetime]:
    """Parse a Supabase timestamp (ISO string, possibly with Z). Naive values are UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def is_valid_uuid(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(str(value))
        return True
    except (ValueError, AttributeError, TypeError):
        return False


def validate_uuid(value: Optional[str], field: str = "id") -> str:
    """Raise 400 validation_error unless value is a UUID."""
    if not is_valid_uuid(value):
        raise validation_error(
            f"Invalid {field}",
            details=[{"field": field, "issue": "must be a valid UUID"}],
        )
    return str(value)


_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    slug = _SLUG_STRIP.sub("-", value.lower()).strip("-")
    return slug or "workspace"


_FILTER_RESERVED = re.compile(r'[,()"\\]')


def filter_search_term(value: Optional[str]) -> str:
    """
    Free text safe to embed in a PostgREST or_() filter.
    Reserved characters become the single-character LIKE wildcard.
    """
    if not value:
        return ""
    return _FILTER_RESERVED.sub("_", value.strip())


def get_request_context(request: Optional[Request]) -> dict:
    """IP + user agent for audit metadata."""
    if request is None:
        return {}

    from core.rate_limiter import get_client_ip

    return {
        "ip_address": get_client_ip(request),
        "user_agent": request.headers.get("user-agent"),
    }
