# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics service module.

This module provides the read-through report service used by the admin
analytics API:

1. Resolve the period token and canonicalize the filters.
2. Unless refresh is requested, return the cached document if present.
3. Otherwise assemble the report and write it back with its topic TTL.

Concurrent misses for the same key both assemble and both write; the last
write wins.

Usage:
    from src.domains.analytics import AnalyticsService

    service = AnalyticsService(cache=report_cache, assembler=assembler)

    result = await service.get_report("users", "7d", {"groupBy": "week"})
    result.data["growth"]
    result.cached
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping

from src.domains.analytics.assembler import ReportAssembler
from src.domains.analytics.cache import ReportCache
from src.domains.analytics.periods import resolve_period
from src.domains.analytics.reports import get_report_builder
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


@dataclass
class ReportResult:
    """A report document and whether it came from the cache."""

    data: dict[str, Any] = field(default_factory=dict)
    cached: bool = False


class AnalyticsService:
    """Service serving report documents through the report cache.

    Attributes:
        cache: Report cache.
        assembler: Assembler used on cache misses.
        clock: Returns "now" for period resolution.
    """

    def __init__(
        self,
        cache: ReportCache,
        assembler: ReportAssembler,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the analytics service.

        Args:
            cache: Report cache.
            assembler: Report assembler.
            clock: Source of the current time.
        """
        self.cache = cache
        self.assembler = assembler
        self.clock = clock

    async def get_report(
        self,
        report_type: str,
        period: str | None = None,
        filters: Mapping[str, Any] | None = None,
        refresh: bool = False,
    ) -> ReportResult:
        """Get a report document, assembling it on a cache miss.

        Args:
            report_type: dashboard, users, courses, revenue or realtime.
            period: Period token; unknown tokens resolve to 30d.
            filters: Raw request filters. Unknown values fall back to
                their defaults.
            refresh: Skip the cache lookup and assemble a fresh document.
                The fresh document still overwrites the cache entry.

        Returns:
            ReportResult with the document and its cache status.

        Raises:
            AnalyticsValidationError: If the report type is unknown.
            ReportAssemblyError: If a report query failed.
            RedisError: If the cache could not be read or written.
        """
        builder = get_report_builder(report_type)
        resolved = resolve_period(period, now=self.clock())
        canonical = builder.canonical_filters(filters or {})
        key_period = resolved.token if builder.uses_period else None

        if not refresh:
            document = await self.cache.get(report_type, key_period, canonical)
            if document is not None:
                logger.debug("Cache hit for %s report", report_type)
                return ReportResult(data=document, cached=True)

        document = await self.assembler.assemble(report_type, resolved, canonical)
        await self.cache.put(report_type, key_period, canonical, document)

        logger.info(
            "Assembled %s report (period=%s, refresh=%s)",
            report_type,
            document.get("period"),
            refresh,
        )
        return ReportResult(data=document, cached=False)
