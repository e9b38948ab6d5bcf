# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get the request context
- Get the Redis client and the aggregate data source
- Get service instances wired with the above

Tests replace get_cache_store and get_data_source through
app.dependency_overrides to run the real services against fakes.

Example:
    @router.get("/dashboard")
    async def get_dashboard(
        service: AnalyticsService = Depends(get_analytics_service),
        context: RequestContext = Depends(get_context),
    ):
        ...
"""

import logging
from typing import Annotated

from fastapi import Depends, Request

from src.api.middleware.request_context import get_request_context
from src.core.config import get_settings
from src.core.context import RequestContext
from src.domains.analytics import (
    AnalyticsDataSource,
    AnalyticsService,
    ExportSpooler,
    LoggingDataSource,
    ReportAssembler,
    ReportCache,
    SQLAlchemyDataSource,
)
from src.infrastructure.cache import RedisClient, get_redis
from src.infrastructure.database import get_session

logger = logging.getLogger(__name__)


def get_context(request: Request) -> RequestContext:
    """Get the request context attached by RequestContextMiddleware."""
    return get_request_context(request)


def get_cache_store() -> RedisClient:
    """Get the Redis client backing the report cache and exports.

    Raises:
        RedisError: If Redis has not been initialized.
    """
    return get_redis()


def get_data_source() -> AnalyticsDataSource:
    """Get the aggregate data source over the platform database."""
    return SQLAlchemyDataSource(get_session)


def get_analytics_service(
    context: Annotated[RequestContext, Depends(get_context)],
    store: Annotated[RedisClient, Depends(get_cache_store)],
    data_source: Annotated[AnalyticsDataSource, Depends(get_data_source)],
) -> AnalyticsService:
    """Get the report service for this request.

    Queries are logged with the request context.
    """
    settings = get_settings().analytics
    return AnalyticsService(
        cache=ReportCache(store, settings.cache_key_prefix, settings.cache_ttls()),
        assembler=ReportAssembler(LoggingDataSource(data_source, context)),
    )


def get_export_spooler(
    context: Annotated[RequestContext, Depends(get_context)],
    store: Annotated[RedisClient, Depends(get_cache_store)],
    data_source: Annotated[AnalyticsDataSource, Depends(get_data_source)],
) -> ExportSpooler:
    """Get the export spooler for this request."""
    return ExportSpooler(
        store=store,
        data_source=LoggingDataSource(data_source, context),
        settings=get_settings().analytics,
    )


# Type aliases for cleaner endpoint signatures
Context = Annotated[RequestContext, Depends(get_context)]
Service = Annotated[AnalyticsService, Depends(get_analytics_service)]
Spooler = Annotated[ExportSpooler, Depends(get_export_spooler)]
