# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admin analytics domain.

This package computes admin reports from the platform's transactional
tables, caches them in Redis, and spools one-shot exports:

- periods: Period token resolution
- numeric: Aggregate value normalization and statistics
- datasource: Aggregate query boundary over SQLAlchemy sessions
- reports: Query batches and folds per report type
- assembler: Concurrent batch execution with all-or-nothing semantics
- cache: Cache key derivation and read-through storage
- export: Export spooling and JSON/CSV rendering
- service: Read-through report service used by the API

Usage:
    from src.domains.analytics import AnalyticsService, ReportAssembler, ReportCache

    service = AnalyticsService(
        cache=ReportCache(redis, "educademy", settings.analytics.cache_ttls()),
        assembler=ReportAssembler(data_source),
    )
    result = await service.get_report("dashboard", "30d")
"""

from src.domains.analytics.assembler import ReportAssembler
from src.domains.analytics.cache import ReportCache, build_cache_key
from src.domains.analytics.datasource import (
    AggregateQuery,
    AnalyticsDataSource,
    LoggingDataSource,
    SQLAlchemyDataSource,
)
from src.domains.analytics.exceptions import (
    AnalyticsError,
    AnalyticsValidationError,
    ExportNotFoundError,
    ReportAssemblyError,
    RequestTimeoutError,
    UpstreamFailureError,
)
from src.domains.analytics.export import (
    ExportDownload,
    ExportRecord,
    ExportRequest,
    ExportSpooler,
    to_csv,
)
from src.domains.analytics.periods import ResolvedPeriod, resolve_period
from src.domains.analytics.reports import REPORT_TYPES
from src.domains.analytics.service import AnalyticsService, ReportResult

__all__ = [
    # Service
    "AnalyticsService",
    "ReportResult",
    "ReportAssembler",
    "ReportCache",
    "build_cache_key",
    "REPORT_TYPES",
    # Data source
    "AggregateQuery",
    "AnalyticsDataSource",
    "LoggingDataSource",
    "SQLAlchemyDataSource",
    # Periods
    "ResolvedPeriod",
    "resolve_period",
    # Export
    "ExportDownload",
    "ExportRecord",
    "ExportRequest",
    "ExportSpooler",
    "to_csv",
    # Exceptions
    "AnalyticsError",
    "AnalyticsValidationError",
    "ExportNotFoundError",
    "ReportAssemblyError",
    "RequestTimeoutError",
    "UpstreamFailureError",
]
