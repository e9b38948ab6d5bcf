# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Dashboard overview report.

Platform-wide totals with period-over-period growth, user retention and
churn, customer lifetime value, category and instructor leaderboards, the
conversion funnel, engagement and system health.
"""

from datetime import timedelta
from typing import Any, Mapping

from sqlalchemy import distinct, func, select

from src.domains.analytics.datasource import AggregateQuery
from src.domains.analytics.numeric import (
    growth_rate,
    normalize,
    percentile,
    ratio,
    rounded,
)
from src.domains.analytics.periods import ResolvedPeriod
from src.domains.analytics.reports.base import (
    ReportBuilder,
    bucket,
    count_distinct_if,
    count_if,
    days_between,
    full_name,
    within,
)
from src.infrastructure.database.models import (
    Category,
    Course,
    Enrollment,
    Instructor,
    LessonCompletion,
    Payment,
    PaymentStatus,
    QuizAttempt,
    Review,
    Student,
    User,
    UserRole,
    UserSession,
)

PUBLISHED = "PUBLISHED"
COMPLETED = PaymentStatus.COMPLETED.value
ACTIVE_USER_WINDOW = timedelta(days=30)


def platform_totals(period: ResolvedPeriod) -> list[AggregateQuery]:
    """Headline scalar totals shared by the dashboard report and its export."""
    return [
        AggregateQuery("total_users", select(func.count(User.id)), "scalar"),
        AggregateQuery(
            "total_courses",
            select(func.count(Course.id)).where(Course.status == PUBLISHED),
            "scalar",
        ),
        AggregateQuery(
            "total_revenue",
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.status == COMPLETED
            ),
            "scalar",
        ),
        AggregateQuery("total_enrollments", select(func.count(Enrollment.id)), "scalar"),
        AggregateQuery(
            "active_users",
            select(func.count(User.id)).where(
                User.last_login >= period.end - ACTIVE_USER_WINDOW
            ),
            "scalar",
        ),
    ]


class DashboardReport(ReportBuilder):
    """Builder for the dashboard overview."""

    report_type = "dashboard"

    def queries(
        self,
        period: ResolvedPeriod,
        filters: Mapping[str, Any],
    ) -> list[AggregateQuery]:
        now = period.end
        start = period.start
        previous = period.previous_start
        last_day = now - timedelta(days=1)
        last_7d = now - timedelta(days=7)
        last_30d = now - timedelta(days=30)
        last_90d = now - timedelta(days=90)

        completed_payment = Payment.status == COMPLETED
        published_course = Course.status == PUBLISHED

        queries = platform_totals(period)

        # Current and previous window counts for growth
        windows = {"current": (start, now), "previous": (previous, start)}
        for label, (window_start, window_end) in windows.items():
            queries.extend(
                [
                    AggregateQuery(
                        f"users_{label}",
                        select(func.count(User.id)).where(
                            within(User.created_at, window_start, window_end)
                        ),
                        "scalar",
                    ),
                    AggregateQuery(
                        f"courses_{label}",
                        select(func.count(Course.id)).where(
                            published_course,
                            within(Course.created_at, window_start, window_end),
                        ),
                        "scalar",
                    ),
                    AggregateQuery(
                        f"revenue_{label}",
                        select(func.coalesce(func.sum(Payment.amount), 0)).where(
                            completed_payment,
                            within(Payment.created_at, window_start, window_end),
                        ),
                        "scalar",
                    ),
                    AggregateQuery(
                        f"enrollments_{label}",
                        select(func.count(Enrollment.id)).where(
                            within(Enrollment.created_at, window_start, window_end)
                        ),
                        "scalar",
                    ),
                ]
            )

        queries.extend(
            [
                AggregateQuery(
                    "retention",
                    select(
                        count_if(User.last_login >= last_day).label("daily"),
                        count_if(User.last_login >= last_7d).label("weekly"),
                        count_if(User.last_login >= last_30d).label("monthly"),
                        count_if(
                            (User.created_at >= last_30d) & (User.last_login >= last_7d)
                        ).label("new_user_retention_7d"),
                        count_if(
                            (User.created_at >= last_90d) & (User.last_login >= last_30d)
                        ).label("new_user_retention_30d"),
                    ).where(User.created_at <= now),
                    "row",
                ),
                AggregateQuery(
                    "churn",
                    select(
                        count_if(
                            (User.last_login < last_30d) & (User.created_at < last_30d)
                        ).label("churned"),
                        count_if(User.last_login >= last_30d).label("active"),
                        count_if(User.created_at >= last_30d).label("new_users"),
                        func.avg(
                            days_between(
                                func.coalesce(User.last_login, now), User.created_at
                            )
                        ).label("avg_lifespan_days"),
                    ).where(User.role == UserRole.STUDENT.value),
                    "row",
                ),
                self._cohorts(now, last_7d, last_90d),
                self._customer_spend(),
                self._weekly_revenue(last_90d),
                self._top_instructors(),
                AggregateQuery(
                    "course_status",
                    select(Course.status.label("status"), func.count(Course.id).label("count"))
                    .group_by(Course.status)
                    .order_by(func.count(Course.id).desc()),
                ),
                self._completion_by_category(),
                self._revenue_by_category(start),
                self._user_growth(start),
                self._conversion(start, now),
                self._engagement(start, now),
                self._system_health(start, last_day, last_7d, last_30d),
                self._geographic(start),
            ]
        )
        return queries

    # ========== Query builders ==========

    def _cohorts(self, now, last_7d, last_90d) -> AggregateQuery:
        week = bucket("week", User.created_at)
        return AggregateQuery(
            "cohorts",
            select(
                week.label("week"),
                func.count(User.id).label("cohort_size"),
                count_if(User.last_login >= last_7d).label("retained"),
            )
            .where(
                User.created_at >= last_90d,
                User.created_at <= now,
                User.role == UserRole.STUDENT.value,
            )
            .group_by(week)
            .order_by(week.desc())
            .limit(12),
        )

    def _customer_spend(self) -> AggregateQuery:
        return AggregateQuery(
            "customer_spend",
            select(
                Enrollment.student_id.label("student_id"),
                func.sum(Payment.amount).label("total_spent"),
            )
            .join(Payment, Enrollment.payment_id == Payment.id)
            .where(Payment.status == COMPLETED)
            .group_by(Enrollment.student_id),
        )

    def _weekly_revenue(self, since) -> AggregateQuery:
        week = bucket("week", Payment.created_at)
        return AggregateQuery(
            "weekly_revenue",
            select(
                week.label("week"),
                func.sum(Payment.amount).label("revenue"),
                func.count(distinct(Payment.id)).label("transactions"),
                func.avg(Payment.amount).label("avg_transaction"),
                func.count(distinct(Enrollment.student_id)).label("customers"),
            )
            .join(Enrollment, Enrollment.payment_id == Payment.id)
            .where(Payment.status == COMPLETED, Payment.created_at >= since)
            .group_by(week)
            .order_by(week.desc())
            .limit(12),
        )

    def _top_instructors(self) -> AggregateQuery:
        return AggregateQuery(
            "top_instructors",
            select(
                Instructor.id.label("id"),
                full_name().label("name"),
                User.profile_image.label("profile_image"),
                Instructor.total_revenue.label("total_revenue"),
                Instructor.total_students.label("total_students"),
                Instructor.total_courses.label("total_courses"),
                Instructor.rating.label("rating"),
            )
            .join(User, Instructor.user_id == User.id)
            .order_by(Instructor.total_revenue.desc())
            .limit(10),
        )

    def _completion_by_category(self) -> AggregateQuery:
        return AggregateQuery(
            "completion_by_category",
            select(
                Category.name.label("category"),
                func.count(distinct(Enrollment.id)).label("total_enrollments"),
                count_distinct_if(Enrollment.status == "COMPLETED", Enrollment.id).label(
                    "completed_enrollments"
                ),
                func.avg(Enrollment.progress).label("avg_progress"),
                func.avg(Course.average_rating).label("avg_rating"),
                func.count(distinct(Course.id)).label("course_count"),
            )
            .select_from(Course)
            .join(Category, Course.category_id == Category.id)
            .outerjoin(Enrollment, Enrollment.course_id == Course.id)
            .where(Course.status == PUBLISHED)
            .group_by(Category.name)
            .order_by(func.count(distinct(Enrollment.id)).desc()),
        )

    def _revenue_by_category(self, start) -> AggregateQuery:
        revenue = func.sum(Payment.amount)
        return AggregateQuery(
            "revenue_by_category",
            select(
                Category.name.label("category"),
                revenue.label("revenue"),
                func.count(distinct(Enrollment.id)).label("enrollments"),
                func.avg(Course.average_rating).label("avg_rating"),
                func.count(distinct(Course.id)).label("total_courses"),
            )
            .select_from(Payment)
            .join(Enrollment, Enrollment.payment_id == Payment.id)
            .join(Course, Enrollment.course_id == Course.id)
            .join(Category, Course.category_id == Category.id)
            .where(Payment.status == COMPLETED, Payment.created_at >= start)
            .group_by(Category.name)
            .order_by(revenue.desc())
            .limit(15),
        )

    def _user_growth(self, start) -> AggregateQuery:
        day = bucket("day", User.created_at)
        return AggregateQuery(
            "user_growth",
            select(
                day.label("date"),
                func.count(User.id).label("users"),
                count_if(User.role == UserRole.STUDENT.value).label("students"),
                count_if(User.role == UserRole.INSTRUCTOR.value).label("instructors"),
                count_if(User.role == UserRole.ADMIN.value).label("admins"),
            )
            .where(User.created_at >= start)
            .group_by(day)
            .order_by(day),
        )

    def _conversion(self, start, now) -> AggregateQuery:
        signups = (
            select(func.count(User.id))
            .where(within(User.created_at, start, now), User.role == UserRole.STUDENT.value)
            .scalar_subquery()
        )
        enrolled = (
            select(func.count(distinct(Enrollment.student_id)))
            .where(within(Enrollment.created_at, start, now))
            .scalar_subquery()
        )
        payments = (
            select(func.count(Payment.id))
            .where(within(Payment.created_at, start, now))
            .scalar_subquery()
        )
        completed = (
            select(func.count(Payment.id))
            .where(within(Payment.created_at, start, now), Payment.status == COMPLETED)
            .scalar_subquery()
        )
        avg_payment = (
            select(func.avg(Payment.amount))
            .where(within(Payment.created_at, start, now), Payment.status == COMPLETED)
            .scalar_subquery()
        )
        return AggregateQuery(
            "conversion",
            select(
                signups.label("signups"),
                enrolled.label("enrolled_students"),
                payments.label("payments_initiated"),
                completed.label("payments_completed"),
                avg_payment.label("avg_payment_amount"),
            ),
            "row",
        )

    def _engagement(self, start, now) -> AggregateQuery:
        completions = (
            select(func.count(LessonCompletion.id))
            .where(within(LessonCompletion.completed_at, start, now))
            .scalar_subquery()
        )
        quiz_score = (
            select(func.avg(QuizAttempt.percentage))
            .where(within(QuizAttempt.created_at, start, now), QuizAttempt.status == "GRADED")
            .scalar_subquery()
        )
        reviews = (
            select(func.count(Review.id))
            .where(within(Review.created_at, start, now))
            .scalar_subquery()
        )
        avg_rating = (
            select(func.avg(Review.rating))
            .where(within(Review.created_at, start, now))
            .scalar_subquery()
        )
        avg_progress = (
            select(func.avg(Enrollment.progress))
            .where(within(Enrollment.created_at, start, now))
            .scalar_subquery()
        )
        return AggregateQuery(
            "engagement",
            select(
                completions.label("lesson_completions"),
                quiz_score.label("avg_quiz_score"),
                reviews.label("total_reviews"),
                avg_rating.label("avg_rating"),
                avg_progress.label("avg_progress"),
            ),
            "row",
        )

    def _system_health(self, start, last_day, last_7d, last_30d) -> AggregateQuery:
        return AggregateQuery(
            "system_health",
            select(
                count_distinct_if(UserSession.is_active.is_(True), UserSession.id).label(
                    "active_sessions"
                ),
                func.avg(UserSession.session_duration).label("avg_session_duration"),
                count_distinct_if(User.last_login >= last_day, User.id).label("daily_active"),
                count_distinct_if(User.last_login >= last_7d, User.id).label("weekly_active"),
                count_distinct_if(User.last_login >= last_30d, User.id).label("monthly_active"),
            )
            .select_from(UserSession)
            .join(User, UserSession.user_id == User.id)
            .where(UserSession.created_at >= start),
            "row",
        )

    def _geographic(self, start) -> AggregateQuery:
        user_count = func.count(distinct(User.id))
        return AggregateQuery(
            "geographic",
            select(
                User.country.label("country"),
                user_count.label("user_count"),
                func.count(Enrollment.id).label("enrollments"),
                func.sum(Payment.amount).label("revenue"),
            )
            .select_from(User)
            .outerjoin(Student, Student.user_id == User.id)
            .outerjoin(Enrollment, Enrollment.student_id == Student.id)
            .outerjoin(
                Payment,
                (Enrollment.payment_id == Payment.id) & (Payment.status == COMPLETED),
            )
            .where(User.country.is_not(None), User.created_at >= start)
            .group_by(User.country)
            .order_by(user_count.desc())
            .limit(20),
        )

    # ========== Folding ==========

    def fold(
        self,
        results: Mapping[str, Any],
        period: ResolvedPeriod,
        filters: Mapping[str, Any],
    ) -> dict[str, Any]:
        total_courses = normalize(results["total_courses"])
        retention = results["retention"]
        churn = results["churn"]
        health = results["system_health"]
        conversion = results["conversion"]
        engagement = results["engagement"]
        spend = [normalize(row["total_spent"]) for row in results["customer_spend"]]

        churned = normalize(churn.get("churned"))
        active = normalize(churn.get("active"))

        return {
            "summary": {
                "totalUsers": normalize(results["total_users"]),
                "totalCourses": total_courses,
                "totalRevenue": rounded(results["total_revenue"]),
                "totalEnrollments": normalize(results["total_enrollments"]),
                "activeUsers": normalize(results["active_users"]),
                "growth": {
                    topic: round(
                        growth_rate(results[f"{topic}_current"], results[f"{topic}_previous"]),
                        2,
                    )
                    for topic in ("users", "courses", "revenue", "enrollments")
                },
            },
            "userAnalytics": {
                "retention": {
                    "daily": normalize(retention.get("daily")),
                    "weekly": normalize(retention.get("weekly")),
                    "monthly": normalize(retention.get("monthly")),
                    "newUserRetention7d": normalize(retention.get("new_user_retention_7d")),
                    "newUserRetention30d": normalize(retention.get("new_user_retention_30d")),
                },
                "churn": {
                    "churned": churned,
                    "active": active,
                    "newUsers": normalize(churn.get("new_users")),
                    "churnRate": ratio(churned, churned + active),
                    "avgUserLifespan": rounded(churn.get("avg_lifespan_days"), 1),
                },
                "cohortAnalysis": [
                    {
                        "week": row["week"],
                        "cohortSize": normalize(row["cohort_size"]),
                        "retainedUsers": normalize(row["retained"]),
                        "retentionRate": ratio(row["retained"], row["cohort_size"]),
                    }
                    for row in results["cohorts"]
                ],
            },
            "financialMetrics": {
                "clv": {
                    "average": rounded(sum(spend) / len(spend)) if spend else 0,
                    "median": rounded(percentile(spend, 50)),
                    "p90": rounded(percentile(spend, 90)),
                    "max": rounded(max(spend)) if spend else 0,
                    "min": rounded(min(spend)) if spend else 0,
                    "customers": len(spend),
                },
                "weeklyRevenue": [
                    {
                        "week": row["week"],
                        "revenue": rounded(row["revenue"]),
                        "transactionCount": normalize(row["transactions"]),
                        "avgTransactionValue": rounded(row["avg_transaction"]),
                        "uniqueCustomers": normalize(row["customers"]),
                    }
                    for row in results["weekly_revenue"]
                ],
            },
            "topInstructors": [
                {
                    "id": row["id"],
                    "name": row["name"],
                    "profileImage": row["profile_image"],
                    "totalRevenue": rounded(row["total_revenue"]),
                    "totalStudents": normalize(row["total_students"]),
                    "totalCourses": normalize(row["total_courses"]),
                    "rating": rounded(row["rating"], 1),
                    "revenuePerStudent": (
                        rounded(normalize(row["total_revenue"]) / normalize(row["total_students"]))
                        if normalize(row["total_students"]) > 0
                        else 0
                    ),
                }
                for row in results["top_instructors"]
            ],
            "courseAnalytics": {
                "statusDistribution": [
                    {
                        "status": row["status"],
                        "count": normalize(row["count"]),
                        "percentage": ratio(row["count"], total_courses, 1),
                    }
                    for row in results["course_status"]
                ],
                "completionByCategory": [
                    {
                        "category": row["category"],
                        "totalEnrollments": normalize(row["total_enrollments"]),
                        "completedEnrollments": normalize(row["completed_enrollments"]),
                        "completionRate": ratio(
                            row["completed_enrollments"], row["total_enrollments"]
                        ),
                        "avgProgress": rounded(row["avg_progress"], 1),
                        "avgRating": rounded(row["avg_rating"], 1),
                        "courseCount": normalize(row["course_count"]),
                    }
                    for row in results["completion_by_category"]
                ],
            },
            "revenueByCategory": [
                {
                    "category": row["category"],
                    "revenue": rounded(row["revenue"]),
                    "enrollments": normalize(row["enrollments"]),
                    "avgRating": rounded(row["avg_rating"], 1),
                    "totalCourses": normalize(row["total_courses"]),
                    "avgRevenuePerEnrollment": (
                        rounded(normalize(row["revenue"]) / normalize(row["enrollments"]))
                        if normalize(row["enrollments"]) > 0
                        else 0
                    ),
                }
                for row in results["revenue_by_category"]
            ],
            "userGrowthTrend": [
                {
                    "date": row["date"],
                    "totalUsers": normalize(row["users"]),
                    "students": normalize(row["students"]),
                    "instructors": normalize(row["instructors"]),
                    "admins": normalize(row["admins"]),
                }
                for row in results["user_growth"]
            ],
            "conversionFunnel": {
                "signups": normalize(conversion.get("signups")),
                "enrolledStudents": normalize(conversion.get("enrolled_students")),
                "paymentsInitiated": normalize(conversion.get("payments_initiated")),
                "paymentsCompleted": normalize(conversion.get("payments_completed")),
                "signupToEnrollment": ratio(
                    conversion.get("enrolled_students"), conversion.get("signups")
                ),
                "paymentToCompletion": ratio(
                    conversion.get("payments_completed"), conversion.get("payments_initiated")
                ),
                "avgPaymentAmount": rounded(conversion.get("avg_payment_amount")),
            },
            "engagement": {
                "lessonCompletions": normalize(engagement.get("lesson_completions")),
                "avgQuizScore": rounded(engagement.get("avg_quiz_score"), 1),
                "totalReviews": normalize(engagement.get("total_reviews")),
                "avgRating": rounded(engagement.get("avg_rating"), 1),
                "avgProgress": rounded(engagement.get("avg_progress"), 1),
            },
            "systemHealth": {
                "activeSessions": normalize(health.get("active_sessions")),
                # seconds to minutes
                "avgSessionDuration": round(normalize(health.get("avg_session_duration")) / 60),
                "dailyActiveUsers": normalize(health.get("daily_active")),
                "weeklyActiveUsers": normalize(health.get("weekly_active")),
                "monthlyActiveUsers": normalize(health.get("monthly_active")),
            },
            "geographicAnalytics": {
                "distribution": [
                    {
                        "country": row["country"],
                        "userCount": normalize(row["user_count"]),
                        "enrollments": normalize(row["enrollments"]),
                        "revenue": rounded(row["revenue"]),
                    }
                    for row in results["geographic"]
                ],
            },
        }
