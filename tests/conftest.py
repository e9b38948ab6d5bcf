# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- An in-memory JSON store standing in for Redis
- A data source returning canned results by query name
- A controllable clock
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from src.core.config.settings import AnalyticsSettings
from src.domains.analytics import (
    AggregateQuery,
    AnalyticsDataSource,
    AnalyticsService,
    ExportSpooler,
    ReportAssembler,
    ReportCache,
)

FIXED_NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Fakes
# =============================================================================


class FakeClock:
    """Clock returning a fixed time until advanced."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryStore:
    """JSON document store with expiry, driven by a FakeClock.

    Mirrors the RedisClient methods used by the report cache and the
    export spooler. Values are stored encoded so callers never share
    references with the store.
    """

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.entries: dict[str, tuple[str, datetime]] = {}
        self.writes: list[tuple[str, int]] = []

    async def set_json(self, key: str, value: Any, expire_seconds: int) -> None:
        expires_at = self.clock() + timedelta(seconds=expire_seconds)
        self.entries[key] = (json.dumps(value), expires_at)
        self.writes.append((key, expire_seconds))

    async def get_json(self, key: str) -> Any:
        entry = self.entries.get(key)
        if entry is None:
            return None
        payload, expires_at = entry
        if self.clock() >= expires_at:
            del self.entries[key]
            return None
        return json.loads(payload)

    async def delete(self, key: str) -> bool:
        return self.entries.pop(key, None) is not None

    async def ttl(self, key: str) -> int:
        entry = self.entries.get(key)
        if entry is None:
            return -2
        return int((entry[1] - self.clock()).total_seconds())

    async def ping(self) -> bool:
        return True

    def put_raw(self, key: str, payload: str, expire_seconds: int = 3600) -> None:
        """Store an already encoded value."""
        self.entries[key] = (payload, self.clock() + timedelta(seconds=expire_seconds))


class FakeDataSource(AnalyticsDataSource):
    """Returns canned results keyed by query name.

    Queries without a canned result answer with an empty value for their
    shape (0, {} or []). Queries listed in failures raise instead.

    Attributes:
        results: Canned results by query name.
        failures: Exceptions to raise by query name.
        calls: Names of the queries run, in start order.
        max_in_flight: Highest number of queries running at the same time.
    """

    EMPTY = {"scalar": 0, "row": {}, "rows": []}

    def __init__(
        self,
        results: dict[str, Any] | None = None,
        failures: dict[str, BaseException] | None = None,
    ) -> None:
        self.results = results or {}
        self.failures = failures or {}
        self.calls: list[str] = []
        self.queries: list[AggregateQuery] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def run(self, query: AggregateQuery) -> Any:
        self.calls.append(query.name)
        self.queries.append(query)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # Yield so every query of a batch is started before any finishes
            await asyncio.sleep(0)
            if query.name in self.failures:
                raise self.failures[query.name]
            if query.name in self.results:
                return self.results[query.name]
            return self.EMPTY[query.shape]
        finally:
            self.in_flight -= 1


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryStore:
    return InMemoryStore(clock)


@pytest.fixture
def data_source() -> FakeDataSource:
    return FakeDataSource()


@pytest.fixture
def analytics_settings() -> AnalyticsSettings:
    return AnalyticsSettings()


@pytest.fixture
def report_cache(store: InMemoryStore, analytics_settings: AnalyticsSettings) -> ReportCache:
    return ReportCache(
        store,
        analytics_settings.cache_key_prefix,
        analytics_settings.cache_ttls(),
    )


@pytest.fixture
def assembler(data_source: FakeDataSource, clock: FakeClock) -> ReportAssembler:
    return ReportAssembler(data_source, clock=clock)


@pytest.fixture
def service(
    report_cache: ReportCache,
    assembler: ReportAssembler,
    clock: FakeClock,
) -> AnalyticsService:
    return AnalyticsService(cache=report_cache, assembler=assembler, clock=clock)


@pytest.fixture
def spooler(
    store: InMemoryStore,
    data_source: FakeDataSource,
    analytics_settings: AnalyticsSettings,
    clock: FakeClock,
) -> ExportSpooler:
    return ExportSpooler(store, data_source, analytics_settings, clock=clock)


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
