# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Aggregate query boundary.

Report builders describe their work as named AggregateQuery objects. A data
source executes one query and returns plain Python values: driver types such
as Decimal and datetime never leave this module.

Shapes:
    scalar: first column of the first row (or None)
    row: first row as a dict (or an empty dict)
    rows: every row as a list of dicts

Example:
    query = AggregateQuery(
        name="total_users",
        statement=select(func.count(User.id)),
        shape="scalar",
    )
    total = await data_source.run(query)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from time import perf_counter
from typing import Any, Callable, Literal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

from src.core.context import RequestContext
from src.domains.analytics.numeric import normalize
from src.utils.datetime import format_iso
from src.utils.logging import get_logger

logger = get_logger(__name__)

QueryShape = Literal["scalar", "row", "rows"]


@dataclass(frozen=True)
class AggregateQuery:
    """A named, read-only aggregate statement.

    Attributes:
        name: Stable identifier used in logs, errors and result lookup.
        statement: SQLAlchemy SELECT to execute.
        shape: How the result set is reduced.
    """

    name: str
    statement: Executable
    shape: QueryShape = "rows"


def clean_value(value: Any) -> Any:
    """Convert a driver value into a JSON-compatible value."""
    if isinstance(value, Decimal):
        return normalize(value)
    if isinstance(value, datetime):
        return format_iso(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [clean_value(item) for item in value]
    return value


def clean_row(row: Any) -> dict[str, Any]:
    """Convert a result mapping into a plain dict of clean values."""
    return {str(key): clean_value(value) for key, value in dict(row).items()}


class AnalyticsDataSource(ABC):
    """Read-only source of aggregate values."""

    @abstractmethod
    async def run(self, query: AggregateQuery) -> Any:
        """Execute a query and return its reduced, cleaned result."""


class SQLAlchemyDataSource(AnalyticsDataSource):
    """Data source backed by SQLAlchemy async sessions.

    Every query opens its own session so the queries of one report can run
    concurrently without sharing a connection.

    Attributes:
        session_factory: Callable returning an async context manager that
            yields an AsyncSession (e.g. get_session).
    """

    def __init__(self, session_factory: Callable[[], Any]) -> None:
        self.session_factory = session_factory

    async def run(self, query: AggregateQuery) -> Any:
        async with self.session_factory() as session:
            return await self._execute(session, query)

    async def _execute(self, session: AsyncSession, query: AggregateQuery) -> Any:
        result = await session.execute(query.statement)

        if query.shape == "scalar":
            return clean_value(result.scalar())

        mappings = result.mappings()
        if query.shape == "row":
            row = mappings.first()
            return clean_row(row) if row is not None else {}

        return [clean_row(row) for row in mappings.all()]


class LoggingDataSource(AnalyticsDataSource):
    """Interceptor that logs every query with its request context.

    Attributes:
        inner: Wrapped data source.
        context: Request the queries are executed for.
    """

    def __init__(self, inner: AnalyticsDataSource, context: RequestContext) -> None:
        self.inner = inner
        self.context = context

    async def run(self, query: AggregateQuery) -> Any:
        started = perf_counter()
        try:
            result = await self.inner.run(query)
        except Exception as e:
            logger.warning(
                "analytics_query_failed",
                query=query.name,
                request_id=self.context.request_id,
                user_id=self.context.user_id,
                elapsed_ms=round((perf_counter() - started) * 1000),
                error=str(e),
            )
            raise

        logger.debug(
            "analytics_query",
            query=query.name,
            request_id=self.context.request_id,
            user_id=self.context.user_id,
            elapsed_ms=round((perf_counter() - started) * 1000),
            rows=len(result) if isinstance(result, list) else 1,
        )
        return result
