# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Compile every report and export statement against the PostgreSQL dialect.

No database is needed: compiling catches broken joins, labels and
GROUP BY expressions before they reach the server.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy.dialects import postgresql

from src.domains.analytics import resolve_period
from src.domains.analytics.export_queries import (
    DASHBOARD_METRICS,
    EXPORT_TYPES,
    ROW_PROJECTIONS,
    export_query,
)
from src.domains.analytics.reports import REPORT_BUILDERS
from src.domains.analytics.reports.dashboard import platform_totals

PERIOD = resolve_period("30d", now=datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc))

FILTER_VARIANTS = {
    "dashboard": [{}],
    "users": [
        {"groupBy": "week", "segment": "all"},
        {"groupBy": "month", "segment": "instructors"},
    ],
    "courses": [
        {"groupBy": "day", "categoryId": None},
        {"groupBy": "year", "categoryId": "cat-1"},
    ],
    "revenue": [{"groupBy": "week", "currency": "INR"}],
    "realtime": [{}],
}


def compile_sql(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


@pytest.mark.parametrize(
    ("report_type", "filters"),
    [
        (report_type, filters)
        for report_type, variants in FILTER_VARIANTS.items()
        for filters in variants
    ],
)
def test_report_queries_compile(report_type: str, filters: dict) -> None:
    builder = REPORT_BUILDERS[report_type]

    for query in builder.queries(PERIOD, builder.canonical_filters(filters)):
        assert compile_sql(query.statement).startswith("SELECT")


def test_every_report_type_is_covered() -> None:
    assert set(FILTER_VARIANTS) == set(REPORT_BUILDERS)


def test_group_by_unit_is_inlined() -> None:
    builder = REPORT_BUILDERS["users"]
    queries = builder.queries(PERIOD, builder.canonical_filters({"groupBy": "week"}))
    growth = next(q for q in queries if q.name == "growth")

    assert "date_trunc('week'" in compile_sql(growth.statement)


def test_category_filter_is_applied() -> None:
    builder = REPORT_BUILDERS["courses"]
    queries = builder.queries(PERIOD, builder.canonical_filters({"categoryId": "cat-1"}))

    assert all('"Course"."categoryId" =' in compile_sql(q.statement) for q in queries)


def test_platform_totals_compile() -> None:
    for query in platform_totals(PERIOD):
        assert query.shape == "scalar"
        assert compile_sql(query.statement).startswith("SELECT")


def test_dashboard_report_and_export_share_totals() -> None:
    totals = [q.name for q in platform_totals(PERIOD)]
    report = [q.name for q in REPORT_BUILDERS["dashboard"].queries(PERIOD, {})]

    assert report[: len(totals)] == totals
    assert [name for _, name, _ in DASHBOARD_METRICS] == totals


@pytest.mark.parametrize("export_type", sorted(ROW_PROJECTIONS))
@pytest.mark.parametrize("details", [False, True])
def test_export_queries_compile(export_type: str, details: bool) -> None:
    query = export_query(
        export_type,
        PERIOD,
        details,
        {"categoryId": "cat-1", "instructorId": "ins-1"},
        500,
    )

    sql = compile_sql(query.statement)
    assert query.name == f"export_{export_type}"
    assert "LIMIT" in sql


def test_every_list_export_has_a_projection() -> None:
    assert set(ROW_PROJECTIONS) == set(EXPORT_TYPES) - {"dashboard"}
