# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for cache key derivation and the report cache."""

from src.domains.analytics import ReportCache, build_cache_key


class TestBuildCacheKey:
    """Tests for build_cache_key."""

    def test_layout(self) -> None:
        key = build_cache_key("educademy", "users", "7d", {"segment": "all", "groupBy": "day"})

        assert key == "educademy:analytics:users:groupBy=day|period=7d|segment=all"

    def test_filter_order_does_not_matter(self) -> None:
        first = build_cache_key("p", "revenue", "30d", {"currency": "INR", "groupBy": "week"})
        second = build_cache_key("p", "revenue", "30d", {"groupBy": "week", "currency": "INR"})

        assert first == second

    def test_none_values_are_dropped(self) -> None:
        with_none = build_cache_key("p", "courses", "30d", {"categoryId": None, "groupBy": "day"})
        without = build_cache_key("p", "courses", "30d", {"groupBy": "day"})

        assert with_none == without

    def test_report_without_period(self) -> None:
        assert build_cache_key("p", "realtime", None, {}) == "p:analytics:realtime:"

    def test_distinct_filters_give_distinct_keys(self) -> None:
        weekly = build_cache_key("p", "users", "7d", {"groupBy": "week"})
        daily = build_cache_key("p", "users", "7d", {"groupBy": "day"})
        other_period = build_cache_key("p", "users", "90d", {"groupBy": "week"})

        assert len({weekly, daily, other_period}) == 3


class TestReportCache:
    """Tests for ReportCache."""

    async def test_miss_then_hit(self, report_cache: ReportCache) -> None:
        assert await report_cache.get("dashboard", "30d") is None

        await report_cache.put("dashboard", "30d", {}, {"summary": {"totalUsers": 3}})

        assert await report_cache.get("dashboard", "30d") == {"summary": {"totalUsers": 3}}

    async def test_put_uses_topic_ttl(self, report_cache: ReportCache, store) -> None:
        key = await report_cache.put("realtime", None, {}, {"live": {}})

        assert store.writes == [(key, 300)]

    async def test_put_with_explicit_ttl(self, report_cache: ReportCache, store) -> None:
        key = await report_cache.put("users", "7d", {}, {}, ttl_seconds=10)

        assert store.writes == [(key, 10)]

    async def test_unknown_report_type_uses_default_ttl(self, store) -> None:
        cache = ReportCache(store, "p", {}, default_ttl=42)

        await cache.put("custom", "7d", {}, {})

        assert store.writes[0][1] == 42

    async def test_entry_expires(self, report_cache: ReportCache, clock) -> None:
        await report_cache.put("dashboard", "7d", {}, {"summary": {}})

        clock.advance(seconds=1799)
        assert await report_cache.get("dashboard", "7d") is not None

        clock.advance(seconds=1)
        assert await report_cache.get("dashboard", "7d") is None

    async def test_non_object_entry_is_a_miss(self, report_cache: ReportCache, store) -> None:
        store.put_raw(report_cache.key_for("users", "7d", {}), "[1, 2, 3]")

        assert await report_cache.get("users", "7d", {}) is None

    async def test_put_overwrites(self, report_cache: ReportCache) -> None:
        await report_cache.put("users", "7d", {"segment": "all"}, {"version": 1})
        await report_cache.put("users", "7d", {"segment": "all"}, {"version": 2})

        assert await report_cache.get("users", "7d", {"segment": "all"}) == {"version": 2}
