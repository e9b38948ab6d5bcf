# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the read-through analytics service."""

import pytest

from src.domains.analytics import (
    AnalyticsService,
    AnalyticsValidationError,
    ReportAssemblyError,
)


class TestReadThrough:
    """Tests for cache hits, misses and refresh."""

    async def test_miss_assembles_and_caches(
        self, service: AnalyticsService, data_source, store
    ) -> None:
        result = await service.get_report("dashboard", "7d")

        assert result.cached is False
        assert result.data["period"] == "7d"
        assert data_source.calls
        assert store.writes == [("educademy:analytics:dashboard:period=7d", 1800)]

    async def test_hit_skips_the_data_source(
        self, service: AnalyticsService, data_source
    ) -> None:
        first = await service.get_report("users", "30d", {"groupBy": "week"})
        data_source.calls.clear()

        second = await service.get_report("users", "30d", {"groupBy": "week"})

        assert second.cached is True
        assert second.data == first.data
        assert data_source.calls == []

    async def test_refresh_bypasses_and_rewrites(
        self, service: AnalyticsService, data_source, store, clock
    ) -> None:
        await service.get_report("courses", "90d")
        clock.advance(minutes=5)
        data_source.calls.clear()

        result = await service.get_report("courses", "90d", refresh=True)

        assert result.cached is False
        assert data_source.calls
        assert result.data["lastUpdated"] == "2025-06-15T12:05:00+00:00"
        assert len(store.writes) == 2
        assert store.writes[0][0] == store.writes[1][0]

        cached = await service.get_report("courses", "90d")
        assert cached.cached is True
        assert cached.data["lastUpdated"] == "2025-06-15T12:05:00+00:00"

    async def test_expired_entry_is_reassembled(
        self, service: AnalyticsService, clock
    ) -> None:
        await service.get_report("realtime")
        clock.advance(seconds=300)

        result = await service.get_report("realtime")

        assert result.cached is False


class TestKeyCanonicalization:
    """Tests for requests that resolve to the same report."""

    async def test_unknown_period_shares_the_30d_entry(
        self, service: AnalyticsService
    ) -> None:
        await service.get_report("dashboard", "30d")

        result = await service.get_report("dashboard", "bogus")

        assert result.cached is True
        assert result.data["period"] == "30d"

    async def test_default_filters_share_an_entry(self, service: AnalyticsService) -> None:
        await service.get_report("users", "7d", {})

        result = await service.get_report(
            "users", "7d", {"groupBy": "day", "segment": "all", "unknown": "x"}
        )

        assert result.cached is True

    async def test_invalid_filter_values_fall_back(self, service: AnalyticsService, store) -> None:
        result = await service.get_report("users", "7d", {"groupBy": "hour", "segment": "robots"})

        assert result.data["groupBy"] == "day"
        assert result.data["segment"] == "all"
        assert store.writes[0][0] == "educademy:analytics:users:groupBy=day|period=7d|segment=all"

    async def test_currency_defaults_and_uppercases(self, service: AnalyticsService, store) -> None:
        default = await service.get_report("revenue", "7d")
        lower = await service.get_report("revenue", "7d", {"currency": "usd"})

        assert default.data["currency"] == "INR"
        assert lower.data["currency"] == "USD"
        assert lower.cached is False
        assert store.writes[1][0].endswith("currency=USD|groupBy=day|period=7d")

    async def test_realtime_ignores_period(self, service: AnalyticsService, store) -> None:
        await service.get_report("realtime", "7d")

        result = await service.get_report("realtime", "1y")

        assert result.cached is True
        assert result.data["period"] == "live"
        assert store.writes[0][0] == "educademy:analytics:realtime:"


class TestFailures:
    """Tests for failed requests."""

    async def test_failed_assembly_is_not_cached(
        self, service: AnalyticsService, data_source, store
    ) -> None:
        data_source.failures["trends"] = RuntimeError("timeout")

        with pytest.raises(ReportAssemblyError):
            await service.get_report("revenue", "7d")

        assert store.writes == []

        del data_source.failures["trends"]
        result = await service.get_report("revenue", "7d")
        assert result.cached is False

    async def test_unknown_report_type(self, service: AnalyticsService) -> None:
        with pytest.raises(AnalyticsValidationError):
            await service.get_report("profit", "7d")
