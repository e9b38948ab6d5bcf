# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware components.

This package provides middleware for request processing:
- RequestContextMiddleware: Request id, caller identity and timeout.

Exports:
    RequestContextMiddleware: Request context middleware.
    get_request_context: Read the context a request carries.
"""

from src.api.middleware.request_context import (
    RequestContextMiddleware,
    get_request_context,
)

__all__ = [
    "RequestContextMiddleware",
    "get_request_context",
]
