# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Report builders by report type.

Example:
    builder = get_report_builder("courses")
    batch = builder.queries(period, builder.canonical_filters({"groupBy": "week"}))
"""

from src.domains.analytics.exceptions import AnalyticsValidationError
from src.domains.analytics.reports.base import ReportBuilder
from src.domains.analytics.reports.courses import CoursesReport
from src.domains.analytics.reports.dashboard import DashboardReport
from src.domains.analytics.reports.realtime import RealtimeReport
from src.domains.analytics.reports.revenue import RevenueReport
from src.domains.analytics.reports.users import UsersReport

REPORT_BUILDERS: dict[str, ReportBuilder] = {
    builder.report_type: builder
    for builder in (
        DashboardReport(),
        UsersReport(),
        CoursesReport(),
        RevenueReport(),
        RealtimeReport(),
    )
}

REPORT_TYPES = tuple(REPORT_BUILDERS)


def get_report_builder(report_type: str) -> ReportBuilder:
    """Look up the builder for a report type.

    Raises:
        AnalyticsValidationError: If the report type is unknown.
    """
    try:
        return REPORT_BUILDERS[report_type]
    except KeyError:
        raise AnalyticsValidationError(
            f"Unknown report type: {report_type}",
            code="INVALID_REPORT_TYPE",
        ) from None


__all__ = [
    "REPORT_BUILDERS",
    "REPORT_TYPES",
    "CoursesReport",
    "DashboardReport",
    "RealtimeReport",
    "ReportBuilder",
    "RevenueReport",
    "UsersReport",
    "get_report_builder",
]
