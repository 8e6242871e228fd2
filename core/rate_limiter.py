# core/rate_limiter.py

from typing import Dict, Tuple
from fastapi import Request
from collections import defaultdict
from threading import Lock
import time


# Simple in-memory rate limiter
# For production, consider using Redis or a dedicated rate limiting service
_rate_limit_store: Dict[str, list] = defaultdict(list)
_lock = Lock()


def check_rate_limit(
    identifier: str,
    max_requests: int = 10,
    window_seconds: int = 60,
) -> Tuple[bool, int]:
    """
    Check if a request should be rate limited (sliding window).

    Args:
        identifier: Unique identifier (IP address, user ID, share link, etc.)
        max_requests: Maximum number of requests allowed
        window_seconds: Time window in seconds

    Returns:
        Tuple of (allowed: bool, remaining: int)
    """
    now = time.time()
    window_start = now - window_seconds

    with _lock:
        # Remove expired entries
        requests = [ts for ts in _rate_limit_store[identifier] if ts > window_start]

        # Check if limit exceeded
        if len(requests) >= max_requests:
            _rate_limit_store[identifier] = requests
            return False, 0

        # Add current request
        requests.append(now)
        _rate_limit_store[identifier] = requests

    return True, max_requests - len(requests)


def reset_rate_limits():
    with _lock:
        _rate_limit_store.clear()


def get_client_ip(request: Request) -> str:
    """
    Client IP as seen by the API.
    Prefers the first X-Forwarded-For hop (we run behind a proxy), then X-Real-IP.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP (original client)
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"

