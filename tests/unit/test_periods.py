# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for period and group-by resolution."""

from datetime import datetime, timedelta, timezone

import pytest

from src.domains.analytics.periods import (
    ResolvedPeriod,
    resolve_group_by,
    resolve_period,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


class TestResolvePeriod:
    """Tests for resolve_period."""

    @pytest.mark.parametrize(
        ("token", "days"),
        [("7d", 7), ("30d", 30), ("90d", 90), ("1y", 365)],
    )
    def test_known_tokens(self, token: str, days: int) -> None:
        """Test that each token spans its number of days ending at now."""
        period = resolve_period(token, now=NOW)

        assert period.token == token
        assert period.end == NOW
        assert period.start == NOW - timedelta(days=days)

    @pytest.mark.parametrize("token", [None, "", "2w", "30D", "all"])
    def test_unknown_tokens_resolve_like_30d(self, token: str | None) -> None:
        """Test that unknown tokens fall back to the 30 day window."""
        period = resolve_period(token, now=NOW)

        assert period == resolve_period("30d", now=NOW)

    def test_naive_now_is_treated_as_utc(self) -> None:
        """Test that a naive reference time is interpreted as UTC."""
        period = resolve_period("7d", now=datetime(2025, 6, 15, 12, 0))

        assert period.end == NOW

    def test_previous_window_has_equal_length(self) -> None:
        """Test the comparison window immediately preceding the period."""
        period = resolve_period("90d", now=NOW)

        assert period.previous_start == NOW - timedelta(days=180)
        assert period.start - period.previous_start == period.duration

    def test_to_dict(self) -> None:
        """Test serialization of a resolved period."""
        period = ResolvedPeriod(token="7d", start=NOW - timedelta(days=7), end=NOW)

        assert period.to_dict() == {
            "token": "7d",
            "start": "2025-06-08T12:00:00+00:00",
            "end": "2025-06-15T12:00:00+00:00",
        }


class TestResolveGroupBy:
    """Tests for resolve_group_by."""

    @pytest.mark.parametrize("unit", ["day", "week", "month", "year"])
    def test_known_units(self, unit: str) -> None:
        assert resolve_group_by(unit) == unit

    @pytest.mark.parametrize("unit", [None, "hour", "DAY", "day; DROP TABLE users"])
    def test_unknown_units_fall_back_to_day(self, unit: str | None) -> None:
        assert resolve_group_by(unit) == "day"
