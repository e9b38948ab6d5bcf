# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request context middleware.

For every request this middleware:
1. Builds a RequestContext from the X-Request-ID and X-User-Id headers
   (a request id is generated when the caller sends none).
2. Stores it in request.state.context and binds request_id/user_id into
   the structlog context for the duration of the request.
3. Enforces the blanket request timeout (504 REQUEST_TIMEOUT).
4. Turns any exception that escaped the exception handlers into a 500
   INTERNAL_SERVER_ERROR envelope.
5. Echoes the request id in the X-Request-ID response header.

Authentication is handled upstream; X-User-Id carries the admin id the
gateway authenticated.
"""

import asyncio
import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.api.responses import REQUEST_ID_HEADER, error_response
from src.core.context import RequestContext
from src.domains.analytics.exceptions import (
    INTERNAL_ERROR_MESSAGE,
    AnalyticsError,
    RequestTimeoutError,
    UpstreamFailureError,
)
from src.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"

# Longest request id accepted from a caller
MAX_REQUEST_ID_LENGTH = 128


def _failure(context: RequestContext, error: AnalyticsError) -> Response:
    return error_response(context, error.status_code, error.message, error.code)


def get_request_context(request: Request) -> RequestContext:
    """Return the context stored by the middleware, creating one if absent."""
    context = getattr(request.state, "context", None)
    if context is None:
        context = RequestContext.create()
        request.state.context = context
    return context


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware attaching a RequestContext and enforcing the timeout.

    Attributes:
        _timeout_seconds: Blanket timeout for one request.
    """

    def __init__(self, app: ASGIApp, timeout_seconds: float = 300.0) -> None:
        """Initialize the request context middleware.

        Args:
            app: ASGI application.
            timeout_seconds: Requests running longer are cancelled.
        """
        super().__init__(app)
        self._timeout_seconds = timeout_seconds

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        """Process the request within its context.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware/handler.

        Returns:
            HTTP response.
        """
        request_id = request.headers.get(REQUEST_ID_HEADER, "").strip()
        if len(request_id) > MAX_REQUEST_ID_LENGTH:
            request_id = ""
        user_id = request.headers.get(USER_ID_HEADER, "").strip()

        context = RequestContext.create(request_id=request_id, user_id=user_id)
        request.state.context = context
        bind_context(request_id=context.request_id, user_id=context.user_id)

        try:
            response = await asyncio.wait_for(call_next(request), self._timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(
                "Request timed out: %s %s (request_id=%s, user_id=%s, elapsed_ms=%d)",
                request.method,
                request.url.path,
                context.request_id,
                context.user_id,
                context.elapsed_ms(),
            )
            return _failure(context, RequestTimeoutError("Request timeout"))
        except Exception as e:
            logger.exception(
                "Unhandled error: %s %s (request_id=%s, user_id=%s, elapsed_ms=%d): %s",
                request.method,
                request.url.path,
                context.request_id,
                context.user_id,
                context.elapsed_ms(),
                e,
            )
            return _failure(context, UpstreamFailureError(INTERNAL_ERROR_MESSAGE))
        finally:
            clear_context()

        response.headers[REQUEST_ID_HEADER] = context.request_id
        return response
