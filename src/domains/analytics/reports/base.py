# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base class and SQL helpers for report builders.

A report builder declares two things:

1. queries(): the fixed batch of named AggregateQuery objects for one
   report. The batch depends only on the period and the canonical filters.
2. fold(): turns the results, keyed by query name, into the nested report
   document.

The assembler runs the batch concurrently and calls fold() once every query
has succeeded. Builders never touch the database themselves.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import case, extract, func, literal_column
from sqlalchemy.sql import ColumnElement

from src.domains.analytics.datasource import AggregateQuery
from src.domains.analytics.periods import ResolvedPeriod, resolve_group_by
from src.infrastructure.database.models import User


class ReportBuilder(ABC):
    """Declares and folds the query batch of one report type.

    Attributes:
        report_type: Identifier used in cache keys and routes.
        uses_period: False for reports that ignore the period token.
    """

    report_type: str = ""
    uses_period: bool = True

    def canonical_filters(self, filters: Mapping[str, Any]) -> dict[str, Any]:
        """Apply defaults and drop unknown filters.

        The result is what the cache key is built from, so two requests
        that resolve to the same report produce the same filters.
        """
        return {}

    @abstractmethod
    def queries(
        self,
        period: ResolvedPeriod,
        filters: Mapping[str, Any],
    ) -> list[AggregateQuery]:
        """Return the query batch for this report."""

    @abstractmethod
    def fold(
        self,
        results: Mapping[str, Any],
        period: ResolvedPeriod,
        filters: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Fold query results into the report body."""


# ========== SQL helpers ==========


def bucket(unit: str, column: ColumnElement) -> ColumnElement:
    """DATE_TRUNC on a whitelisted unit.

    The unit is rendered inline so the SELECT and GROUP BY expressions are
    identical.
    """
    unit = resolve_group_by(unit)
    return func.date_trunc(literal_column(f"'{unit}'"), column)


def count_if(condition: ColumnElement) -> ColumnElement:
    """COUNT(CASE WHEN condition THEN 1 END)."""
    return func.count(case((condition, 1)))


def count_distinct_if(condition: ColumnElement, column: ColumnElement) -> ColumnElement:
    """COUNT(DISTINCT CASE WHEN condition THEN column END)."""
    return func.count(func.distinct(case((condition, column))))


def days_between(later: Any, earlier: Any) -> ColumnElement:
    """Fractional days between two timestamps."""
    return extract("epoch", later - earlier) / 86400


def full_name(user: type[User] = User) -> ColumnElement:
    """First and last name joined with a space."""
    return func.concat(user.first_name, " ", user.last_name)


def within(column: ColumnElement, start: datetime, end: datetime) -> ColumnElement:
    """start <= column < end."""
    return (column >= start) & (column < end)
