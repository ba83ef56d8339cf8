"""Unit tests for build_cache_key."""

from __future__ import annotations

from beacon.cache import build_cache_key


class TestBuildCacheKey:
    def test_plain_parts(self):
        assert build_cache_key("event-summary", "app-1", "click", None, None) == (
            "event-summary:app-1:click:all:all"
        )

    def test_deterministic(self):
        parts = ("app-1", "signup", "2024-01-01", None)
        assert build_cache_key("event-summary", *parts) == build_cache_key("event-summary", *parts)

    def test_separator_inside_part_cannot_collide(self):
        """A ':' inside a value must not shift the other parts."""
        a = build_cache_key("user-stats", "app:1", "u")
        b = build_cache_key("user-stats", "app", "1:u")

        assert a != b

    def test_iso_timestamps_are_encoded(self):
        key = build_cache_key("event-summary", "app-1", "click", "2024-01-01T10:00:00", None)

        assert key == "event-summary:app-1:click:2024-01-01T10%3A00%3A00:all"
