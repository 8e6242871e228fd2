# tests/test_cache.py

"""
Tests for caching functionality.
"""

from core.cache import SimpleCache


def test_cache_set_and_get():
    """Test setting and getting values from cache."""
    cache = SimpleCache()

    cache.set("test_key", "test_value", ttl_seconds=60)

    assert cache.get("test_key") == "test_value"


def test_cache_expiration():
    """A zero TTL entry is expired on the next read."""
    cache = SimpleCache()

    cache.set("expiring_key", "expired_value", ttl_seconds=0)

    assert cache.get("expiring_key") is None
    assert cache.size() == 0


def test_ttl_remaining_rounds_up():
    cache = SimpleCache()
    cache.set("key", "value", ttl_seconds=300)

    entry = cache.get_entry("key")

    assert 299 <= entry.ttl_remaining() <= 300


def test_cache_delete():
    """Test deleting cache entries."""
    cache = SimpleCache()

    cache.set("delete_key", "delete_value")
    assert cache.get("delete_key") == "delete_value"

    cache.delete("delete_key")

    assert cache.get("delete_key") is None


def test_delete_prefix_only_touches_matching_keys():
    cache = SimpleCache()
    cache.set("ws-1:ccp-01:parcel-discovery", True)
    cache.set("ws-1:ccp-08:saved-parcels", False)
    cache.set("ws-2:ccp-01:parcel-discovery", True)

    removed = cache.delete_prefix("ws-1:")

    assert removed == 2
    assert cache.get("ws-2:ccp-01:parcel-discovery") is True


def test_cache_clear():
    """Test clearing all cache entries."""
    cache = SimpleCache()
    cache.set("key1", "value1")
    cache.set("key2", "value2")

    assert cache.clear() == 2

    assert cache.get("key1") is None
    assert cache.get("key2") is None


def test_stats_and_cleanup():
    cache = SimpleCache()
    cache.set("live", 1, ttl_seconds=60)
    cache.set("dead", 2, ttl_seconds=0)

    assert cache.stats() == {"size": 2, "valid": 1, "expired": 1}
    assert cache.cleanup_expired() == 1
    assert cache.stats() == {"size": 1, "valid": 1, "expired": 0}
