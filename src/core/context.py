# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request-scoped context.

A RequestContext is created once per HTTP request by the request context
middleware and handed explicitly to the collaborators that need it (the
query logging interceptor, the export spooler). Nothing in the service keeps
"current request" state at module level.

Example:
    context = RequestContext.create(user_id="admin-1")
    data_source = LoggingDataSource(inner, context)
"""

from dataclasses import dataclass, field
from time import perf_counter
from uuid import uuid4

SYSTEM_USER = "system"


@dataclass(frozen=True)
class RequestContext:
    """Identity of the request being served.

    Attributes:
        request_id: Correlation id echoed to the caller on failures.
        user_id: Authenticated admin id, or None for internal callers.
        started_at: perf_counter() reading taken when the request arrived.
    """

    request_id: str
    user_id: str | None = None
    started_at: float = field(default_factory=perf_counter)

    @classmethod
    def create(
        cls,
        request_id: str | None = None,
        user_id: str | None = None,
    ) -> "RequestContext":
        """Build a context, generating a request id when none is supplied."""
        return cls(request_id=request_id or uuid4().hex, user_id=user_id or None)

    @property
    def actor(self) -> str:
        """User id for audit fields, falling back to the system actor."""
        return self.user_id or SYSTEM_USER

    def elapsed_ms(self) -> int:
        """Milliseconds since the request started."""
        return round((perf_counter() - self.started_at) * 1000)
