# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Custom exceptions for the analytics domain.

This module defines the exception hierarchy for analytics operations:
- AnalyticsError: Base exception carrying an error code and HTTP status
- AnalyticsValidationError: Rejected input, answered with 400
- ExportNotFoundError: Unknown or expired export id, answered with 404
- ReportAssemblyError: A report query failed
- UpstreamFailureError: Any other failure reaching the HTTP boundary
- RequestTimeoutError: The request exceeded the blanket timeout
"""

INTERNAL_ERROR_MESSAGE = "Internal server error"


class AnalyticsError(Exception):
    """Base exception for all analytics errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code returned in the failure envelope.
        status_code: HTTP status used when the error reaches the API.
        original_error: The underlying exception, if any.
    """

    code = "INTERNAL_SERVER_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize analytics error.

        Args:
            message: Human-readable error description.
            code: Overrides the class-level error code.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation with the underlying error if any."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message

    @property
    def public_message(self) -> str:
        """Message safe to return to clients; server errors stay generic."""
        if self.status_code >= 500:
            return INTERNAL_ERROR_MESSAGE
        return self.message


class AnalyticsValidationError(AnalyticsError):
    """Request was rejected before any query ran.

    Codes used: INVALID_EXPORT_TYPE, INVALID_FORMAT, VALIDATION_ERROR.
    """

    code = "VALIDATION_ERROR"
    status_code = 400


class ExportNotFoundError(AnalyticsError):
    """Export id does not resolve (never existed or expired)."""

    code = "EXPORT_NOT_FOUND"
    status_code = 404

    def __init__(self, export_id: str) -> None:
        super().__init__("Export not found or expired")
        self.export_id = export_id


class ReportAssemblyError(AnalyticsError):
    """One query of a report batch failed; the whole report is discarded.

    Attributes:
        report_type: Report being assembled.
        query_name: Name of the first query that failed.
    """

    def __init__(
        self,
        report_type: str,
        query_name: str,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            f"Failed to assemble {report_type} report (query: {query_name})",
            original_error=original_error,
        )
        self.report_type = report_type
        self.query_name = query_name


class UpstreamFailureError(AnalyticsError):
    """Unexpected failure surfaced to the caller as a generic 500."""

    pass


class RequestTimeoutError(AnalyticsError):
    """Request exceeded the configured timeout."""

    code = "REQUEST_TIMEOUT"
    status_code = 504
