"""
Tests for helper functions.

Tests pair keys, list-as-set helpers, and UTC serialization.
"""
from datetime import datetime, timedelta, timezone

from profinder.utils.helpers import add_to_set, pair_key, remove_from_set, to_iso_utc, utc_now


class TestPairKey:
    """Tests for pair_key()."""

    def test_is_order_independent(self):
        assert pair_key("u1", "u2") == pair_key("u2", "u1")

    def test_distinct_pairs_differ(self):
        assert pair_key("u1", "u2") != pair_key("u1", "u3")


class TestSetHelpers:
    """Tests for add_to_set() and remove_from_set()."""

    def test_add_is_idempotent(self):
        once = add_to_set([], ["a"])
        assert add_to_set(once, ["a"]) == ["a"]

    def test_add_keeps_order(self):
        assert add_to_set(["b", "a"], ["c", "a"]) == ["b", "a", "c"]

    def test_remove_absent_is_noop(self):
        assert remove_from_set(["a"], ["x"]) == ["a"]

    def test_handles_none(self):
        assert add_to_set(None, ["a"]) == ["a"]
        assert remove_from_set(None, ["a"]) == []


class TestTimestamps:
    """Tests for utc_now() and to_iso_utc()."""

    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo == timezone.utc

    def test_naive_treated_as_utc(self):
        assert to_iso_utc(datetime(2025, 12, 16, 11, 30)) == "2025-12-16T11:30:00Z"

    def test_offset_converted_to_utc(self):
        plus_eight = timezone(timedelta(hours=8))
        value = datetime(2025, 12, 16, 19, 30, tzinfo=plus_eight)
        assert to_iso_utc(value) == "2025-12-16T11:30:00Z"

    def test_none_passthrough(self):
        assert to_iso_utc(None) is None
