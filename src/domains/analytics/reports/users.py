# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User analytics report.

Filters:
    groupBy: Trend bucket (day, week, month, year).
    segment: Restricts role-based topics to students, instructors or admins.

Lifecycle metrics (time to first purchase, spend) are computed for student
accounts only, whatever the segment.
"""

from datetime import timedelta
from typing import Any, Mapping

from sqlalchemy import case, distinct, func, literal_column, select

from src.domains.analytics.datasource import AggregateQuery
from src.domains.analytics.numeric import average, normalize, percentile, ratio, rounded
from src.domains.analytics.periods import ResolvedPeriod, resolve_group_by
from src.domains.analytics.reports.base import (
    ReportBuilder,
    bucket,
    count_if,
    days_between,
)
from src.infrastructure.database.models import (
    Enrollment,
    Payment,
    PaymentStatus,
    Student,
    User,
    UserActivity,
    UserRole,
    UserSession,
)

SEGMENT_ROLES: dict[str, str | None] = {
    "all": None,
    "students": UserRole.STUDENT.value,
    "instructors": UserRole.INSTRUCTOR.value,
    "admins": UserRole.ADMIN.value,
}
DEFAULT_SEGMENT = "all"

# Days since last login
CHURN_HIGH_DAYS = 90
CHURN_MEDIUM_DAYS = 30


def resolve_segment(value: str | None) -> str:
    """Return a known segment, falling back to "all"."""
    if value in SEGMENT_ROLES:
        return value
    return DEFAULT_SEGMENT


class UsersReport(ReportBuilder):
    """Builder for the user breakdown."""

    report_type = "users"

    def canonical_filters(self, filters: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "groupBy": resolve_group_by(filters.get("groupBy")),
            "segment": resolve_segment(filters.get("segment")),
        }

    def queries(
        self,
        period: ResolvedPeriod,
        filters: Mapping[str, Any],
    ) -> list[AggregateQuery]:
        start, now = period.start, period.end
        role = SEGMENT_ROLES[filters["segment"]]
        in_segment = User.role == role if role is not None else None

        def scoped(statement):
            if in_segment is None:
                return statement
            return statement.where(in_segment)

        trend = bucket(filters["groupBy"], User.created_at)
        growth = scoped(
            select(
                trend.label("date"),
                func.count(User.id).label("total"),
                count_if(User.role == UserRole.STUDENT.value).label("students"),
                count_if(User.role == UserRole.INSTRUCTOR.value).label("instructors"),
                count_if(User.role == UserRole.ADMIN.value).label("admins"),
                count_if(User.is_verified.is_(True)).label("verified"),
            ).where(User.created_at >= start)
        ).group_by(trend).order_by(trend)

        first_enrollment = func.min(Enrollment.created_at)
        lifecycle = (
            select(
                User.id.label("user_id"),
                func.count(Enrollment.id).label("total_enrollments"),
                func.coalesce(func.sum(Payment.amount), 0).label("total_spent"),
                days_between(first_enrollment, User.created_at).label("days_to_first_purchase"),
            )
            .select_from(User)
            .outerjoin(Student, Student.user_id == User.id)
            .outerjoin(Enrollment, Enrollment.student_id == Student.id)
            .outerjoin(
                Payment,
                (Enrollment.payment_id == Payment.id)
                & (Payment.status == PaymentStatus.COMPLETED.value),
            )
            .where(User.created_at >= start, User.role == UserRole.STUDENT.value)
            .group_by(User.id, User.created_at)
        )

        user_count = func.count(User.id)
        geographic = (
            scoped(
                select(
                    User.country.label("country"),
                    user_count.label("total"),
                    count_if(User.role == UserRole.STUDENT.value).label("students"),
                    count_if(User.role == UserRole.INSTRUCTOR.value).label("instructors"),
                ).where(User.created_at >= start, User.country.is_not(None))
            )
            .group_by(User.country)
            .order_by(user_count.desc())
            .limit(20)
        )

        last_7d = now - timedelta(days=7)
        engagement = scoped(
            select(
                User.role.label("role"),
                func.count(distinct(User.id)).label("total_users"),
                func.count(distinct(UserSession.id)).label("sessions"),
                func.avg(UserSession.session_duration).label("avg_session_duration"),
                func.count(distinct(UserActivity.id)).label("activities"),
                func.count(
                    distinct(case((UserActivity.created_at >= last_7d, User.id)))
                ).label("weekly_active"),
            )
            .select_from(User)
            .outerjoin(
                UserSession,
                (UserSession.user_id == User.id) & (UserSession.created_at >= start),
            )
            .outerjoin(
                UserActivity,
                (UserActivity.user_id == User.id) & (UserActivity.created_at >= start),
            )
            .where(User.created_at >= start)
        ).group_by(User.role)

        inactive_days = days_between(now, func.coalesce(User.last_login, User.created_at))
        risk = case(
            (inactive_days > CHURN_HIGH_DAYS, "High"),
            (inactive_days > CHURN_MEDIUM_DAYS, "Medium"),
            else_="Low",
        )
        churn_risk = scoped(
            select(
                risk.label("risk"),
                func.count(User.id).label("users"),
                func.avg(inactive_days).label("avg_days_inactive"),
            ).where(User.created_at >= start)
        ).group_by(literal_column("risk"))

        return [
            AggregateQuery("growth", growth),
            AggregateQuery("lifecycle", lifecycle),
            AggregateQuery("geographic", geographic),
            AggregateQuery("engagement", engagement),
            AggregateQuery("churn_risk", churn_risk),
        ]

    def fold(
        self,
        results: Mapping[str, Any],
        period: ResolvedPeriod,
        filters: Mapping[str, Any],
    ) -> dict[str, Any]:
        lifecycle = results["lifecycle"]
        purchasers = [row for row in lifecycle if normalize(row["total_enrollments"]) > 0]
        spend = [normalize(row["total_spent"]) for row in lifecycle]
        first_purchase_days = [
            row["days_to_first_purchase"]
            for row in lifecycle
            if row["days_to_first_purchase"] is not None
        ]

        return {
            "growth": [
                {
                    "date": row["date"],
                    "total": normalize(row["total"]),
                    "students": normalize(row["students"]),
                    "instructors": normalize(row["instructors"]),
                    "admins": normalize(row["admins"]),
                    "verifiedUsers": normalize(row["verified"]),
                }
                for row in results["growth"]
            ],
            "lifecycle": {
                "users": len(lifecycle),
                "conversionRate": ratio(len(purchasers), len(lifecycle)),
                "averageDaysToFirstPurchase": average(first_purchase_days, 1),
                "averageEnrollmentsPerUser": average(
                    row["total_enrollments"] for row in lifecycle
                ),
                "averageSpendingPerUser": average(spend),
                "spendPercentiles": {
                    "p50": rounded(percentile(spend, 50)),
                    "p75": rounded(percentile(spend, 75)),
                    "p90": rounded(percentile(spend, 90)),
                },
            },
            "geographic": [
                {
                    "country": row["country"],
                    "totalUsers": normalize(row["total"]),
                    "students": normalize(row["students"]),
                    "instructors": normalize(row["instructors"]),
                }
                for row in results["geographic"]
            ],
            "engagement": [
                {
                    "role": row["role"],
                    "totalUsers": normalize(row["total_users"]),
                    "sessions": normalize(row["sessions"]),
                    # seconds to minutes
                    "avgSessionDuration": round(normalize(row["avg_session_duration"]) / 60),
                    "totalActivities": normalize(row["activities"]),
                    "weeklyActiveUsers": normalize(row["weekly_active"]),
                    "engagementRate": ratio(row["weekly_active"], row["total_users"]),
                }
                for row in results["engagement"]
            ],
            "churnAnalysis": [
                {
                    "risk": row["risk"],
                    "userCount": normalize(row["users"]),
                    "avgDaysInactive": rounded(row["avg_days_inactive"], 1),
                }
                for row in results["churn_risk"]
            ],
            "groupBy": filters["groupBy"],
            "segment": filters["segment"],
        }
