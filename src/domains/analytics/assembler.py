# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Report assembly.

The assembler turns a report request into a document:

1. The builder declares the query batch for the period and filters.
2. Every query of the batch is started at once and awaited together.
3. If any query failed, the whole report fails with ReportAssemblyError
   naming the first failed query (in batch order). Nothing is folded.
4. Otherwise the builder folds the results, and the document is stamped
   with its period and assembly time.

Example:
    assembler = ReportAssembler(data_source)
    document = await assembler.assemble("revenue", resolve_period("90d"), {})
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Mapping

from src.domains.analytics.datasource import AnalyticsDataSource, clean_value
from src.domains.analytics.exceptions import ReportAssemblyError
from src.domains.analytics.numeric import normalize
from src.domains.analytics.periods import ResolvedPeriod
from src.domains.analytics.reports import ReportBuilder, get_report_builder
from src.utils.datetime import format_iso, utc_now

logger = logging.getLogger(__name__)

LIVE_PERIOD = "live"


def clean_document(value: Any) -> Any:
    """Recursively coerce a folded document into JSON-safe values."""
    if isinstance(value, dict):
        return {str(key): clean_document(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [clean_document(item) for item in value]
    if isinstance(value, float):
        return normalize(value)
    return clean_value(value)


class ReportAssembler:
    """Runs report query batches against a data source.

    Attributes:
        data_source: Source the queries are executed on.
        clock: Returns the assembly time stamped as lastUpdated.
    """

    def __init__(
        self,
        data_source: AnalyticsDataSource,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.data_source = data_source
        self.clock = clock

    async def assemble(
        self,
        report_type: str,
        period: ResolvedPeriod,
        filters: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Assemble one report document.

        Args:
            report_type: Registered report type.
            period: Resolved reporting window.
            filters: Canonical filters (see ReportBuilder.canonical_filters).

        Returns:
            Report document with period and lastUpdated.

        Raises:
            AnalyticsValidationError: If the report type is unknown.
            ReportAssemblyError: If any query of the batch failed.
        """
        builder = get_report_builder(report_type)
        filters = dict(filters) if filters is not None else builder.canonical_filters({})

        results = await self._run_batch(builder, period, filters)
        document = clean_document(builder.fold(results, period, filters))

        document["period"] = period.token if builder.uses_period else LIVE_PERIOD
        document["lastUpdated"] = format_iso(self.clock())
        return document

    async def _run_batch(
        self,
        builder: ReportBuilder,
        period: ResolvedPeriod,
        filters: Mapping[str, Any],
    ) -> dict[str, Any]:
        batch = builder.queries(period, filters)
        outcomes = await asyncio.gather(
            *(self.data_source.run(query) for query in batch),
            return_exceptions=True,
        )

        results: dict[str, Any] = {}
        for query, outcome in zip(batch, outcomes):
            if isinstance(outcome, Exception):
                logger.error(
                    "Report %s failed on query %s: %s",
                    builder.report_type,
                    query.name,
                    outcome,
                )
                raise ReportAssemblyError(builder.report_type, query.name, outcome)
            if isinstance(outcome, BaseException):
                raise outcome
            results[query.name] = outcome

        logger.debug(
            "Assembled %s report from %d queries", builder.report_type, len(batch)
        )
        return results
