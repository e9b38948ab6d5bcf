# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for realtime status and alert rules."""

from datetime import datetime, timezone

import pytest

from src.domains.analytics.reports.realtime import build_alerts, minutes_ago, system_status
from src.domains.analytics.reports.revenue import customer_segment

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("sessions", "status"),
    [(101, "healthy"), (100, "moderate"), (51, "moderate"), (50, "low"), (0, "low")],
)
def test_system_status(sessions: int, status: str) -> None:
    assert system_status(sessions) == status


def test_no_alerts_when_quiet() -> None:
    assert build_alerts(failed_payments=10, open_tickets=50, active_sessions=10) == []


def test_all_alerts() -> None:
    alerts = build_alerts(failed_payments=12, open_tickets=51, active_sessions=3)

    assert alerts == [
        {
            "type": "warning",
            "message": "12 failed payments in last 24h",
            "priority": "high",
        },
        {"type": "info", "message": "51 open support tickets", "priority": "medium"},
        {"type": "warning", "message": "Low active session count", "priority": "medium"},
    ]


@pytest.mark.parametrize(
    ("timestamp", "expected"),
    [
        ("2025-06-15T11:45:00+00:00", 15),
        ("2025-06-15T11:59:00Z", 1),
        (datetime(2025, 6, 15, 11, 30, tzinfo=timezone.utc), 30),
        ("yesterday", 0),
        (None, 0),
    ],
)
def test_minutes_ago(timestamp: object, expected: int) -> None:
    assert minutes_ago(timestamp, NOW) == expected


@pytest.mark.parametrize(
    ("spent", "segment"),
    [(10001, "High Value"), (10000, "Medium Value"), (2000, "Medium Value"), (1999.99, "Low Value")],
)
def test_customer_segment(spent: float, segment: str) -> None:
    assert customer_segment(spent) == segment
