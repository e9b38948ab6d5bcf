# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admin analytics API endpoints.

This module provides endpoints for the admin analytics dashboard:
- GET /dashboard - Platform overview
- GET /users - User growth, lifecycle and churn
- GET /courses - Course performance and completion funnels
- GET /revenue - Revenue trends, payment methods and refunds
- GET /realtime - Live platform statistics
- POST /export - Spool an export
- GET /download/{export_id} - Download a spooled export

Report endpoints accept refresh=true to bypass the report cache.

Example:
    GET /api/v1/admin/analytics/users?period=90d&groupBy=week&segment=students
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Query, Response
from pydantic import BaseModel, ConfigDict, Field

from src.api.dependencies import Context, Service, Spooler
from src.api.responses import SuccessResponse, success_response
from src.core.context import RequestContext
from src.domains.analytics import AnalyticsService, ExportRequest

logger = logging.getLogger(__name__)

router = APIRouter()

DOWNLOAD_PATH = "/api/v1/admin/analytics/download"

Period = Annotated[str | None, Query(description="7d, 30d, 90d or 1y (default 30d)")]
Refresh = Annotated[bool, Query(description="Bypass the report cache")]
GroupBy = Annotated[
    str | None,
    Query(alias="groupBy", description="day, week, month or year (default day)"),
]


# ============================================================================
# Request Models
# ============================================================================


class ExportRequestBody(BaseModel):
    """Export request body."""

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field("dashboard", description="Export type")
    period: str | None = Field(None, description="Period token, 30d when missing")
    format: str = Field("json", description="json or csv")
    include_details: bool = Field(
        False, alias="includeDetails", description="Use the detailed projection"
    )
    category_id: str | None = Field(
        None, alias="categoryId", description="Course exports: category filter"
    )
    instructor_id: str | None = Field(
        None, alias="instructorId", description="Course exports: instructor filter"
    )

    def to_domain(self) -> ExportRequest:
        return ExportRequest(
            type=self.type,
            period=self.period,
            format=self.format,
            include_details=self.include_details,
            category_id=self.category_id or None,
            instructor_id=self.instructor_id or None,
        )


# ============================================================================
# Report Endpoints
# ============================================================================


async def _report(
    service: AnalyticsService,
    context: RequestContext,
    report_type: str,
    message: str,
    period: str | None,
    filters: dict[str, str | None],
    refresh: bool,
) -> SuccessResponse:
    result = await service.get_report(report_type, period, filters, refresh=refresh)
    logger.info(
        "Served %s report (cached=%s, request_id=%s, user_id=%s, elapsed_ms=%d)",
        report_type,
        result.cached,
        context.request_id,
        context.user_id,
        context.elapsed_ms(),
    )
    return success_response(context, message, result.data, cached=result.cached)


@router.get(
    "/dashboard",
    response_model=SuccessResponse,
    summary="Get dashboard overview",
    description="Platform totals, growth, retention, revenue and engagement.",
)
async def get_dashboard(
    service: Service,
    context: Context,
    period: Period = None,
    refresh: Refresh = False,
) -> SuccessResponse:
    return await _report(
        service,
        context,
        "dashboard",
        "Dashboard analytics retrieved successfully",
        period,
        {},
        refresh,
    )


@router.get(
    "/users",
    response_model=SuccessResponse,
    summary="Get user analytics",
    description="User growth, lifecycle, geography, engagement and churn risk.",
)
async def get_user_analytics(
    service: Service,
    context: Context,
    period: Period = None,
    group_by: GroupBy = None,
    segment: Annotated[
        str | None, Query(description="all, students, instructors or admins")
    ] = None,
    refresh: Refresh = False,
) -> SuccessResponse:
    return await _report(
        service,
        context,
        "users",
        "User analytics retrieved successfully",
        period,
        {"groupBy": group_by, "segment": segment},
        refresh,
    )


@router.get(
    "/courses",
    response_model=SuccessResponse,
    summary="Get course analytics",
    description="Course performance, categories, pricing and completion funnels.",
)
async def get_course_analytics(
    service: Service,
    context: Context,
    period: Period = None,
    group_by: GroupBy = None,
    category_id: Annotated[
        str | None, Query(alias="categoryId", description="Restrict to one category")
    ] = None,
    refresh: Refresh = False,
) -> SuccessResponse:
    return await _report(
        service,
        context,
        "courses",
        "Course analytics retrieved successfully",
        period,
        {"groupBy": group_by, "categoryId": category_id},
        refresh,
    )


@router.get(
    "/revenue",
    response_model=SuccessResponse,
    summary="Get revenue analytics",
    description="Revenue trends, customers, payment methods and refunds.",
)
async def get_revenue_analytics(
    service: Service,
    context: Context,
    period: Period = None,
    group_by: GroupBy = None,
    currency: Annotated[str | None, Query(description="Currency code (default INR)")] = None,
    refresh: Refresh = False,
) -> SuccessResponse:
    return await _report(
        service,
        context,
        "revenue",
        "Revenue analytics retrieved successfully",
        period,
        {"groupBy": group_by, "currency": currency},
        refresh,
    )


@router.get(
    "/realtime",
    response_model=SuccessResponse,
    summary="Get real-time statistics",
    description="Live sessions, today's activity, backlog health and alerts.",
)
async def get_realtime_stats(
    service: Service,
    context: Context,
    refresh: Refresh = False,
) -> SuccessResponse:
    return await _report(
        service,
        context,
        "realtime",
        "Real-time statistics retrieved successfully",
        None,
        {},
        refresh,
    )


# ============================================================================
# Export Endpoints
# ============================================================================


@router.post(
    "/export",
    response_model=SuccessResponse,
    summary="Export analytics data",
    description="Run an export and store it for download within one hour.",
)
async def export_analytics_data(
    body: ExportRequestBody,
    spooler: Spooler,
    context: Context,
) -> SuccessResponse:
    record = await spooler.create_export(body.to_domain(), generated_by=context.actor)
    data = {
        "exportId": record.export_id,
        "downloadUrl": f"{DOWNLOAD_PATH}/{record.export_id}?format={record.format}",
        **record.metadata(),
    }
    return success_response(context, "Analytics data exported successfully", data)


@router.get(
    "/download/{export_id}",
    summary="Download exported data",
    description="Download a spooled export as JSON or CSV.",
    response_class=Response,
)
async def download_exported_data(
    export_id: str,
    spooler: Spooler,
    context: Context,
    format: Annotated[str | None, Query(description="json or csv")] = None,
) -> Response:
    download = await spooler.download_export(export_id, format)
    logger.info(
        "Downloaded export %s as %s (request_id=%s)",
        export_id,
        download.media_type,
        context.request_id,
    )
    return Response(
        content=download.body,
        media_type=download.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{download.filename}"',
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        },
    )
