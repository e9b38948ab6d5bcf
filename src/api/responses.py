# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Response envelope.

Every analytics endpoint answers with the same envelope:

    success: {"success": true, "message": ..., "data": ...,
              "meta": {"cached", "executionTime", "timestamp", "requestId"}}
    failure: {"success": false, "message": ..., "code": ...,
              "meta": {"executionTime", "timestamp", "requestId"}}

Fields are camelCase on the wire.
"""

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from src.core.context import RequestContext
from src.utils.datetime import format_iso, utc_now

REQUEST_ID_HEADER = "X-Request-ID"


class ResponseMeta(BaseModel):
    """Execution metadata attached to every response."""

    model_config = ConfigDict(populate_by_name=True)

    cached: bool | None = Field(None, description="Served from the report cache")
    execution_time: int = Field(alias="executionTime", description="Handler time in ms")
    timestamp: str = Field(description="Response time, ISO 8601")
    request_id: str = Field(alias="requestId", description="Correlation id")


class SuccessResponse(BaseModel):
    """Successful response envelope."""

    success: bool = True
    message: str
    data: Any = None
    meta: ResponseMeta


class ErrorResponse(BaseModel):
    """Failure response envelope."""

    success: bool = False
    message: str
    code: str
    meta: ResponseMeta


def build_meta(context: RequestContext, cached: bool | None = None) -> ResponseMeta:
    return ResponseMeta(
        cached=cached,
        execution_time=context.elapsed_ms(),
        timestamp=format_iso(utc_now()),
        request_id=context.request_id,
    )


def success_response(
    context: RequestContext,
    message: str,
    data: Any,
    cached: bool = False,
) -> SuccessResponse:
    """Build a success envelope for a handler to return."""
    return SuccessResponse(message=message, data=data, meta=build_meta(context, cached))


def error_response(
    context: RequestContext,
    status_code: int,
    message: str,
    code: str,
) -> JSONResponse:
    """Build a failure envelope as a ready JSONResponse."""
    body = ErrorResponse(message=message, code=code, meta=build_meta(context))
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers={REQUEST_ID_HEADER: context.request_id},
    )
