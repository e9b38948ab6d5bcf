# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the Educademy
analytics API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src import __version__
from src.api.middleware import RequestContextMiddleware, get_request_context
from src.api.responses import error_response
from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import get_settings
from src.domains.analytics.exceptions import (
    INTERNAL_ERROR_MESSAGE,
    AnalyticsError,
    UpstreamFailureError,
)
from src.infrastructure.cache import RedisError, close_redis, init_redis
from src.infrastructure.database import DatabaseError, close_database, init_database
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events for the application.
    Initializes and cleans up:
    - Platform database connection
    - Redis cache

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "Starting Educademy analytics API (environment=%s, debug=%s)",
        settings.environment,
        settings.debug,
    )

    # =========================================================================
    # Startup
    # =========================================================================

    try:
        await init_database(settings)
        logger.info("Database connection initialized")
    except DatabaseError as e:
        logger.warning("Failed to initialize database connection: %s", e)

    try:
        await init_redis(settings)
        logger.info("Redis connection initialized")
    except RedisError as e:
        logger.warning("Failed to initialize Redis: %s", e)

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    try:
        await close_redis()
        logger.info("Redis connection closed")
    except RedisError as e:
        logger.warning("Error closing Redis: %s", e)

    try:
        await close_database()
        logger.info("Database connection closed")
    except DatabaseError as e:
        logger.warning("Error closing database connection: %s", e)

    logger.info("Shutting down Educademy analytics API")


# =========================================================================
# Exception handlers
# =========================================================================


async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    """Answer a domain error with its code and status."""
    context = get_request_context(request)
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Analytics error: %s (operation=%s %s, user_id=%s, request_id=%s, elapsed_ms=%d)",
        exc,
        request.method,
        request.url.path,
        context.user_id,
        context.request_id,
        context.elapsed_ms(),
    )
    return error_response(context, exc.status_code, exc.public_message, exc.code)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Answer malformed query parameters or bodies with 400."""
    context = get_request_context(request)
    logger.warning(
        "Validation error on %s %s (request_id=%s): %s",
        request.method,
        request.url.path,
        context.request_id,
        exc.errors(),
    )
    return error_response(
        context, status.HTTP_400_BAD_REQUEST, "Invalid request parameters", "VALIDATION_ERROR"
    )


async def infrastructure_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Answer a database or Redis failure with a generic 500."""
    context = get_request_context(request)
    logger.error(
        "Infrastructure error on %s %s (user_id=%s, request_id=%s, elapsed_ms=%d): %s",
        request.method,
        request.url.path,
        context.user_id,
        context.request_id,
        context.elapsed_ms(),
        exc,
    )
    error = UpstreamFailureError(INTERNAL_ERROR_MESSAGE, original_error=exc)
    return error_response(context, error.status_code, error.message, error.code)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a new FastAPI instance with all
    middleware, routes, and configurations applied.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Educademy Analytics API",
        description="Admin analytics reports and exports for the Educademy platform",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        redirect_slashes=False,
    )

    # =========================================================================
    # Exception handlers
    # =========================================================================
    app.add_exception_handler(AnalyticsError, analytics_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RedisError, infrastructure_error_handler)
    app.add_exception_handler(DatabaseError, infrastructure_error_handler)

    # =========================================================================
    # Middleware (order matters - last added is first executed)
    # =========================================================================

    app.add_middleware(
        RequestContextMiddleware,
        timeout_seconds=settings.api.request_timeout_seconds,
    )

    # CORS middleware (should be last to execute first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
