# core/cache.py

"""
Simple in-memory caching utilities.

Entitlement results are cached here per (workspace, feature). For a
multi-process deployment, swap in Redis behind the same interface.
"""

import math
from typing import Optional, Any
from datetime import datetime, timedelta
from threading import Lock


class CacheEntry:
    """Represents a cached value with expiration time."""

    def __init__(self, value: Any, ttl_seconds: int):
        self.value = value
        self.expires_at = datetime.now() + timedelta(seconds=ttl_seconds)

    def is_expired(self) -> bool:
        """Check if the cache entry has expired."""
        return datetime.now() >= self.expires_at

    def ttl_remaining(self) -> int:
        """Seconds left before expiry, rounded up."""
        remaining = (self.expires_at - datetime.now()).total_seconds()
        return max(0, math.ceil(remaining))


class SimpleCache:
    """
    Simple in-memory cache with TTL support.

    Thread-safe for concurrent access.
    """

    def __init__(self):
        self._cache: dict[str, CacheEntry] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[Any]:
        """
        Get a value from the cache.

        Returns:
            Cached value or None if not found or expired
        """
        entry = self.get_entry(key)
        return entry.value if entry else None

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Get the live entry (value + expiry) for a key, dropping it if expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            if entry.is_expired():
                del self._cache[key]
                return None

            return entry

    def set(self, key: str, value: Any, ttl_seconds: int = 300):
        """
        Set a value in the cache with TTL.

        Args:
            key: Cache key
            value: Value to cache
            ttl_seconds: Time to live in seconds (default: 5 minutes)
        """
        with self._lock:
            self._cache[key] = CacheEntry(value, ttl_seconds)

    def delete(self, key: str):
        with self._lock:
            self._cache.pop(key, None)

    def delete_prefix(self, prefix: str) -> int:
        """
        Delete every entry whose key starts with prefix.

        Returns:
            Number of entries removed
        """
        with self._lock:
            keys = [key for key in self._cache if key.startswith(prefix)]
            for key in keys:
                del self._cache[key]
            return len(keys)

    def clear(self) -> int:
        """Clear all cache entries. Returns how many were dropped."""
        with self._lock:
            size = len(self._cache)
            self._cache.clear()
            return size

    def cleanup_expired(self) -> int:
        """Remove all expired entries from the cache."""
        with self._lock:
            expired_keys = [
                key for key, entry in self._cache.items()
                if entry.is_expired()
            ]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)

    def stats(self) -> dict:
        """Count valid vs expired entries (without evicting)."""
        with self._lock:
            expired = sum(1 for entry in self._cache.values() if entry.is_expired())
            return {
                "size": len(self._cache),
                "valid": len(self._cache) - expired,
                "expired": expired,
            }

    def size(self) -> int:
        """Get the number of entries in the cache."""
        with self._lock:
            return len(self._cache)
