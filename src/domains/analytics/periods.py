# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Reporting period resolution.

Reports are requested with a symbolic period token. resolve_period() turns
the token into an absolute [start, end) window relative to "now", and
exposes the equal-length window immediately before it for growth
comparisons.

Example:
    >>> period = resolve_period("7d", now=datetime(2025, 1, 8, tzinfo=timezone.utc))
    >>> period.start
    datetime.datetime(2025, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from src.utils.datetime import ensure_utc, utc_now

DEFAULT_PERIOD = "30d"

PERIOD_DAYS: dict[str, int] = {
    "7d": 7,
    "30d": 30,
    "90d": 90,
    "1y": 365,
}

GROUP_BY_UNITS = ("day", "week", "month", "year")
DEFAULT_GROUP_BY = "day"


@dataclass(frozen=True)
class ResolvedPeriod:
    """Absolute reporting window.

    Attributes:
        token: Normalized period token (one of PERIOD_DAYS).
        start: Inclusive window start.
        end: Window end ("now" at resolution time).
    """

    token: str
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def previous_start(self) -> datetime:
        """Start of the equal-length window ending at start."""
        return self.start - self.duration

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "token": self.token,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }


def normalize_period_token(token: str | None) -> str:
    """Return token if it is a known period, otherwise the default."""
    if token in PERIOD_DAYS:
        return token
    return DEFAULT_PERIOD


def resolve_period(token: str | None, now: datetime | None = None) -> ResolvedPeriod:
    """Resolve a period token into an absolute window.

    Unknown tokens, including None, resolve exactly like "30d".

    Args:
        token: Period token such as "7d" or "1y".
        now: Reference time. Defaults to the current UTC time.

    Returns:
        ResolvedPeriod ending at now.
    """
    reference = ensure_utc(now) if now is not None else utc_now()
    normalized = normalize_period_token(token)
    start = reference - timedelta(days=PERIOD_DAYS[normalized])
    return ResolvedPeriod(token=normalized, start=start, end=reference)


def resolve_group_by(value: str | None) -> str:
    """Return a valid trend bucket unit, falling back to "day"."""
    if value in GROUP_BY_UNITS:
        return value
    return DEFAULT_GROUP_BY
