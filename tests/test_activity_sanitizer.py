# tests/test_activity_sanitizer.py

"""
Tests for activity metadata sanitization.
"""

import json

import pytest

from services.activity_sanitizer import sanitize_activity_meta


def test_disallowed_keys_are_dropped():
    meta = sanitize_activity_meta("parcel_selected", {
        "parcel_id": "p-1",
        "apn": "1-2-3",
        "owner_ssn": "000-00-0000",
    })
    assert meta == {"parcel_id": "p-1", "apn": "1-2-3"}


def test_empty_meta_returns_none():
    assert sanitize_activity_meta("parcel_selected", None) is None
    assert sanitize_activity_meta("parcel_selected", {}) is None


def test_unknown_activity_type_returns_empty():
    assert sanitize_activity_meta("launch_rockets", {"parcel_id": "p-1"}) == {}


def test_long_strings_are_truncated():
    meta = sanitize_activity_meta("report_created", {"address": "x" * 5000})
    assert len(meta["address"]) == 1000


def test_lists_and_dicts_are_serialised():
    meta = sanitize_activity_meta("update_workspace", {"updated_fields": ["name", "brand_logo_url"]})
    assert json.loads(meta["updated_fields"]) == ["name", "brand_logo_url"]


def test_numbers_and_bools_pass_through():
    meta = sanitize_activity_meta("share_link_created", {"max_views": 5, "requires_auth": True})
    assert meta == {"max_views": 5, "requires_auth": True}


@pytest.mark.parametrize("key", ["token", "full_token"])
def test_full_share_token_is_rejected(key):
    with pytest.raises(ValueError):
        sanitize_activity_meta("share_link_created", {key: "a" * 43})


def test_long_token_prefix_is_cut():
    meta = sanitize_activity_meta("share_link_created", {"token_prefix": "abcdefghijklmnopqrstuvwxyz"})
    assert meta["token_prefix"] == "abcdefghi"


def test_short_token_prefix_is_kept():
    meta = sanitize_activity_meta("share_link_created", {"token_prefix": "abcdefgh"})
    assert meta["token_prefix"] == "abcdefgh"
