# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Real-time platform statistics.

Live counters relative to "now" (the period end). The period token is
ignored: the document always covers the last minutes and hours.
"""

from datetime import datetime, timedelta
from typing import Any, Mapping

from sqlalchemy import distinct, func, select

from src.domains.analytics.datasource import AggregateQuery
from src.domains.analytics.numeric import normalize, rounded
from src.domains.analytics.periods import ResolvedPeriod
from src.domains.analytics.reports.base import ReportBuilder, count_distinct_if
from src.infrastructure.database.models import (
    Course,
    Enrollment,
    Payment,
    PaymentStatus,
    SupportTicket,
    User,
    UserActivity,
    UserRole,
    UserSession,
)
from src.utils.datetime import parse_iso, start_of_day

ACTIVE_WINDOW = timedelta(minutes=30)
VERY_ACTIVE_WINDOW = timedelta(minutes=5)
INSTRUCTOR_ONLINE_WINDOW = timedelta(hours=1)
ACTIVITY_WINDOW = timedelta(minutes=15)
BACKLOG_WINDOW = timedelta(hours=24)

HEALTHY_SESSIONS = 100
MODERATE_SESSIONS = 50

# Alert thresholds
FAILED_PAYMENTS_ALERT = 10
OPEN_TICKETS_ALERT = 50
LOW_SESSIONS_ALERT = 10


def system_status(active_sessions: int) -> str:
    """healthy, moderate or low by active session count."""
    if active_sessions > HEALTHY_SESSIONS:
        return "healthy"
    if active_sessions > MODERATE_SESSIONS:
        return "moderate"
    return "low"


def build_alerts(
    failed_payments: int,
    open_tickets: int,
    active_sessions: int,
) -> list[dict[str, str]]:
    """Threshold alerts for the realtime document."""
    alerts = []
    if failed_payments > FAILED_PAYMENTS_ALERT:
        alerts.append(
            {
                "type": "warning",
                "message": f"{failed_payments} failed payments in last 24h",
                "priority": "high",
            }
        )
    if open_tickets > OPEN_TICKETS_ALERT:
        alerts.append(
            {
                "type": "info",
                "message": f"{open_tickets} open support tickets",
                "priority": "medium",
            }
        )
    if active_sessions < LOW_SESSIONS_ALERT:
        alerts.append(
            {
                "type": "warning",
                "message": "Low active session count",
                "priority": "medium",
            }
        )
    return alerts


def minutes_ago(timestamp: Any, now: datetime) -> int:
    """Whole minutes between an ISO timestamp and now (0 if unparseable)."""
    if isinstance(timestamp, datetime):
        moment = timestamp
    else:
        try:
            moment = parse_iso(timestamp) if isinstance(timestamp, str) else None
        except ValueError:
            moment = None
    if moment is None:
        return 0
    return round((now - moment).total_seconds() / 60)


class RealtimeReport(ReportBuilder):
    """Builder for the live statistics document."""

    report_type = "realtime"
    uses_period = False

    def queries(
        self,
        period: ResolvedPeriod,
        filters: Mapping[str, Any],
    ) -> list[AggregateQuery]:
        now = period.end
        active_since = now - ACTIVE_WINDOW
        day_ago = now - BACKLOG_WINDOW

        sessions = select(
            count_distinct_if(UserSession.last_activity >= active_since, UserSession.id).label(
                "active_sessions"
            ),
            count_distinct_if(
                UserSession.last_activity >= now - VERY_ACTIVE_WINDOW, UserSession.id
            ).label("very_active_sessions"),
            func.avg(UserSession.session_duration).label("avg_session_duration"),
        ).where(UserSession.is_active.is_(True))

        def count(column, *conditions):
            return select(func.count(column)).where(*conditions).scalar_subquery()

        backlog = select(
            count(
                Payment.id,
                Payment.status == PaymentStatus.PENDING.value,
                Payment.created_at >= day_ago,
            ).label("pending_payments"),
            count(
                Payment.id,
                Payment.status == PaymentStatus.FAILED.value,
                Payment.created_at >= day_ago,
            ).label("failed_payments"),
            count(
                Course.id,
                Course.status == "UNDER_REVIEW",
                Course.created_at >= day_ago,
            ).label("courses_under_review"),
            count(
                SupportTicket.id,
                SupportTicket.status == "OPEN",
                SupportTicket.created_at >= day_ago,
            ).label("open_tickets"),
        )

        payments_today = select(
            func.count(Payment.id).label("payments"),
            func.coalesce(func.sum(Payment.amount), 0).label("revenue"),
        ).where(
            Payment.status == PaymentStatus.COMPLETED.value,
            Payment.created_at >= start_of_day(now),
        )

        recent_activity = (
            select(
                UserActivity.action.label("action"),
                UserActivity.created_at.label("timestamp"),
                User.first_name.label("first_name"),
                User.last_name.label("last_name"),
                User.role.label("role"),
            )
            .join(User, UserActivity.user_id == User.id)
            .where(UserActivity.created_at >= now - ACTIVITY_WINDOW)
            .order_by(UserActivity.created_at.desc())
            .limit(50)
        )

        return [
            AggregateQuery(
                "active_users",
                select(func.count(User.id)).where(User.last_login >= active_since),
                "scalar",
            ),
            AggregateQuery("sessions", sessions, "row"),
            AggregateQuery(
                "online_instructors",
                select(func.count(distinct(User.id))).where(
                    User.role == UserRole.INSTRUCTOR.value,
                    User.last_login >= now - INSTRUCTOR_ONLINE_WINDOW,
                ),
                "scalar",
            ),
            AggregateQuery(
                "new_signups",
                select(func.count(User.id)).where(User.created_at >= day_ago),
                "scalar",
            ),
            AggregateQuery(
                "new_enrollments",
                select(func.count(Enrollment.id)).where(Enrollment.created_at >= day_ago),
                "scalar",
            ),
            AggregateQuery("payments_today", payments_today, "row"),
            AggregateQuery("backlog", backlog, "row"),
            AggregateQuery("recent_activity", recent_activity),
        ]

    def fold(
        self,
        results: Mapping[str, Any],
        period: ResolvedPeriod,
        filters: Mapping[str, Any],
    ) -> dict[str, Any]:
        now = period.end
        sessions = results["sessions"]
        backlog = results["backlog"]
        payments = results["payments_today"]

        active_sessions = normalize(sessions.get("active_sessions"))
        failed_payments = normalize(backlog.get("failed_payments"))
        open_tickets = normalize(backlog.get("open_tickets"))

        return {
            "live": {
                "activeUsers": normalize(results["active_users"]),
                "activeSessions": active_sessions,
                "veryActiveSessions": normalize(sessions.get("very_active_sessions")),
                "onlineInstructors": normalize(results["online_instructors"]),
                # seconds to minutes
                "avgSessionDuration": round(
                    normalize(sessions.get("avg_session_duration")) / 60
                ),
            },
            "today": {
                "newSignups": normalize(results["new_signups"]),
                "newEnrollments": normalize(results["new_enrollments"]),
                "totalPayments": normalize(payments.get("payments")),
                "revenueToday": rounded(payments.get("revenue")),
            },
            "systemHealth": {
                "pendingPayments": normalize(backlog.get("pending_payments")),
                "failedPayments": failed_payments,
                "coursesUnderReview": normalize(backlog.get("courses_under_review")),
                "openSupportTickets": open_tickets,
                "systemStatus": system_status(active_sessions),
            },
            "recentActivity": [
                {
                    "action": row["action"],
                    "user": f"{row['first_name']} {row['last_name']}",
                    "role": row["role"],
                    "timestamp": row["timestamp"],
                    "timeAgo": minutes_ago(row["timestamp"], now),
                }
                for row in results["recent_activity"]
            ],
            "alerts": build_alerts(failed_payments, open_tickets, active_sessions),
        }
