# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course analytics report.

Filters:
    groupBy: Bucket for the course creation trend.
    categoryId: Restricts every topic to one category.
"""

from typing import Any, Mapping

from sqlalchemy import case, distinct, func, literal_column, select

from src.domains.analytics.datasource import AggregateQuery
from src.domains.analytics.numeric import normalize, ratio, rounded
from src.domains.analytics.periods import ResolvedPeriod, resolve_group_by
from src.domains.analytics.reports.base import (
    ReportBuilder,
    bucket,
    count_distinct_if,
    full_name,
)
from src.infrastructure.database.models import (
    Category,
    Course,
    Enrollment,
    Instructor,
    Review,
    User,
)

PUBLISHED = "PUBLISHED"

# (label, lower bound inclusive, upper bound exclusive)
PRICE_RANGES: tuple[tuple[str, float | None, float | None], ...] = (
    ("Under 1000", None, 1000),
    ("1000-5000", 1000, 5000),
    ("5000-15000", 5000, 15000),
    ("Above 15000", 15000, None),
)

# Progress milestones for the completion funnel
FUNNEL_STEPS = {
    "started": 0,
    "quarterComplete": 25,
    "halfComplete": 50,
    "threeQuarterComplete": 75,
}


def price_range():
    """CASE expression mapping Course.price onto PRICE_RANGES labels."""
    whens = []
    for label, low, high in PRICE_RANGES:
        condition = None
        if low is not None:
            condition = Course.price >= low
        if high is not None:
            upper = Course.price < high
            condition = upper if condition is None else condition & upper
        whens.append((condition, label))
    return case(*whens)


class CoursesReport(ReportBuilder):
    """Builder for the course breakdown."""

    report_type = "courses"

    def canonical_filters(self, filters: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "groupBy": resolve_group_by(filters.get("groupBy")),
            "categoryId": filters.get("categoryId") or None,
        }

    def queries(
        self,
        period: ResolvedPeriod,
        filters: Mapping[str, Any],
    ) -> list[AggregateQuery]:
        start = period.start
        category_id = filters["categoryId"]

        def scoped(statement):
            statement = statement.where(Course.created_at >= start)
            if category_id is not None:
                statement = statement.where(Course.category_id == category_id)
            return statement

        published = Course.status == PUBLISHED

        performance = (
            scoped(
                select(
                    Course.id.label("id"),
                    Course.title.label("title"),
                    Course.level.label("level"),
                    Course.price.label("price"),
                    Course.average_rating.label("rating"),
                    Course.total_enrollments.label("enrollments"),
                    Course.total_revenue.label("revenue"),
                    Course.completion_rate.label("completion_rate"),
                    Category.name.label("category"),
                    full_name().label("instructor"),
                    func.count(distinct(Review.id)).label("review_count"),
                    func.avg(Enrollment.progress).label("avg_progress"),
                )
                .select_from(Course)
                .join(Category, Course.category_id == Category.id)
                .join(Instructor, Course.instructor_id == Instructor.id)
                .join(User, Instructor.user_id == User.id)
                .outerjoin(Review, Review.course_id == Course.id)
                .outerjoin(Enrollment, Enrollment.course_id == Course.id)
            )
            .group_by(Course.id, Category.name, User.first_name, User.last_name)
            .order_by(Course.total_revenue.desc())
            .limit(50)
        )

        total_revenue = func.sum(Course.total_revenue)
        categories = (
            scoped(
                select(
                    Category.name.label("category"),
                    func.count(Course.id).label("course_count"),
                    func.avg(Course.price).label("avg_price"),
                    func.sum(Course.total_enrollments).label("total_enrollments"),
                    total_revenue.label("total_revenue"),
                    func.avg(Course.average_rating).label("avg_rating"),
                    func.avg(Course.completion_rate).label("avg_completion_rate"),
                )
                .select_from(Course)
                .join(Category, Course.category_id == Category.id)
                .where(published)
            )
            .group_by(Category.name)
            .order_by(total_revenue.desc())
        )

        instructors = (
            scoped(
                select(
                    Instructor.id.label("id"),
                    full_name().label("name"),
                    func.count(Course.id).label("course_count"),
                    func.sum(Course.total_enrollments).label("total_enrollments"),
                    total_revenue.label("total_revenue"),
                    func.avg(Course.average_rating).label("avg_rating"),
                    func.avg(Course.completion_rate).label("avg_completion_rate"),
                    Instructor.rating.label("instructor_rating"),
                )
                .select_from(Instructor)
                .join(User, Instructor.user_id == User.id)
                .join(Course, Course.instructor_id == Instructor.id)
                .where(published)
            )
            .group_by(Instructor.id, User.first_name, User.last_name, Instructor.rating)
            .order_by(total_revenue.desc())
            .limit(20)
        )

        pricing = scoped(
            select(
                price_range().label("price_range"),
                func.count(Course.id).label("course_count"),
                func.avg(Course.total_enrollments).label("avg_enrollments"),
                func.avg(Course.average_rating).label("avg_rating"),
                total_revenue.label("total_revenue"),
            ).where(published)
        ).group_by(literal_column("price_range"))

        enrolled = func.count(distinct(Enrollment.id))
        funnel_columns = [
            count_distinct_if(Enrollment.progress > threshold, Enrollment.id).label(name)
            if threshold == 0
            else count_distinct_if(Enrollment.progress >= threshold, Enrollment.id).label(name)
            for name, threshold in FUNNEL_STEPS.items()
        ]
        completion_funnel = (
            scoped(
                select(
                    Course.id.label("id"),
                    Course.title.label("title"),
                    enrolled.label("enrolled"),
                    *funnel_columns,
                    count_distinct_if(Enrollment.status == "COMPLETED", Enrollment.id).label(
                        "completed"
                    ),
                )
                .select_from(Course)
                .outerjoin(Enrollment, Enrollment.course_id == Course.id)
                .where(published)
            )
            .group_by(Course.id, Course.title)
            .having(enrolled > 0)
            .order_by(enrolled.desc())
            .limit(20)
        )

        difficulty = scoped(
            select(
                Course.level.label("level"),
                func.count(Course.id).label("course_count"),
                func.avg(Course.average_rating).label("avg_rating"),
                func.avg(Course.total_enrollments).label("avg_enrollments"),
                func.avg(Course.completion_rate).label("avg_completion_rate"),
                func.avg(Course.price).label("avg_price"),
            ).where(published)
        ).group_by(Course.level)

        trend = bucket(filters["groupBy"], Course.created_at)
        creation_trend = (
            scoped(
                select(
                    trend.label("date"),
                    func.count(distinct(Course.id)).label("courses_created"),
                    func.count(Enrollment.id).label("enrollments"),
                )
                .select_from(Course)
                .outerjoin(Enrollment, Enrollment.course_id == Course.id)
            )
            .group_by(trend)
            .order_by(trend)
        )

        return [
            AggregateQuery("performance", performance),
            AggregateQuery("categories", categories),
            AggregateQuery("instructors", instructors),
            AggregateQuery("pricing", pricing),
            AggregateQuery("completion_funnel", completion_funnel),
            AggregateQuery("difficulty", difficulty),
            AggregateQuery("creation_trend", creation_trend),
        ]

    def fold(
        self,
        results: Mapping[str, Any],
        period: ResolvedPeriod,
        filters: Mapping[str, Any],
    ) -> dict[str, Any]:
        pricing = {row["price_range"]: row for row in results["pricing"]}

        return {
            "performance": [
                {
                    "id": row["id"],
                    "title": row["title"],
                    "level": row["level"],
                    "price": rounded(row["price"]),
                    "rating": rounded(row["rating"], 1),
                    "enrollments": normalize(row["enrollments"]),
                    "revenue": rounded(row["revenue"]),
                    "completionRate": rounded(row["completion_rate"]),
                    "category": row["category"],
                    "instructor": row["instructor"],
                    "reviewCount": normalize(row["review_count"]),
                    "avgProgress": rounded(row["avg_progress"]),
                    "revenuePerEnrollment": _per(row["revenue"], row["enrollments"]),
                }
                for row in results["performance"]
            ],
            "categoryAnalysis": [
                {
                    "category": row["category"],
                    "courseCount": normalize(row["course_count"]),
                    "avgPrice": rounded(row["avg_price"]),
                    "totalEnrollments": normalize(row["total_enrollments"]),
                    "totalRevenue": rounded(row["total_revenue"]),
                    "avgRating": rounded(row["avg_rating"], 1),
                    "avgCompletionRate": rounded(row["avg_completion_rate"]),
                    "revenuePerCourse": _per(row["total_revenue"], row["course_count"]),
                }
                for row in results["categories"]
            ],
            "instructorAnalysis": [
                {
                    "id": row["id"],
                    "name": row["name"],
                    "courseCount": normalize(row["course_count"]),
                    "totalEnrollments": normalize(row["total_enrollments"]),
                    "totalRevenue": rounded(row["total_revenue"]),
                    "avgRating": rounded(row["avg_rating"], 1),
                    "avgCompletionRate": rounded(row["avg_completion_rate"]),
                    "instructorRating": rounded(row["instructor_rating"], 1),
                    "revenuePerCourse": _per(row["total_revenue"], row["course_count"]),
                }
                for row in results["instructors"]
            ],
            # Always every range, in ascending price order
            "pricingAnalysis": [
                {
                    "priceRange": label,
                    "courseCount": normalize(pricing.get(label, {}).get("course_count")),
                    "avgEnrollments": round(
                        normalize(pricing.get(label, {}).get("avg_enrollments"))
                    ),
                    "avgRating": rounded(pricing.get(label, {}).get("avg_rating"), 1),
                    "totalRevenue": rounded(pricing.get(label, {}).get("total_revenue")),
                    "revenuePerCourse": _per(
                        pricing.get(label, {}).get("total_revenue"),
                        pricing.get(label, {}).get("course_count"),
                    ),
                }
                for label, _, _ in PRICE_RANGES
            ],
            "completionFunnel": [
                {
                    "id": row["id"],
                    "title": row["title"],
                    "funnel": {
                        "enrolled": normalize(row["enrolled"]),
                        **{name: normalize(row[name]) for name in FUNNEL_STEPS},
                        "completed": normalize(row["completed"]),
                    },
                    "conversionRates": {
                        "startRate": ratio(row["started"], row["enrolled"], 1),
                        "completionRate": ratio(row["completed"], row["enrolled"], 1),
                    },
                }
                for row in results["completion_funnel"]
            ],
            "difficultyAnalysis": [
                {
                    "level": row["level"],
                    "courseCount": normalize(row["course_count"]),
                    "avgRating": rounded(row["avg_rating"], 1),
                    "avgEnrollments": round(normalize(row["avg_enrollments"])),
                    "avgCompletionRate": rounded(row["avg_completion_rate"]),
                    "avgPrice": rounded(row["avg_price"]),
                }
                for row in results["difficulty"]
            ],
            "creationTrend": [
                {
                    "date": row["date"],
                    "coursesCreated": normalize(row["courses_created"]),
                    "enrollments": normalize(row["enrollments"]),
                }
                for row in results["creation_trend"]
            ],
            "groupBy": filters["groupBy"],
            "categoryFilter": filters["categoryId"],
        }


def _per(total: Any, count: Any) -> int | float:
    """total / count rounded to cents, 0 when count is zero."""
    denominator = normalize(count)
    if denominator == 0:
        return 0
    return rounded(normalize(total) / denominator)
