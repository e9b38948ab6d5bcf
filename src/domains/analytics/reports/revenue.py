# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Revenue analytics report.

Filters:
    groupBy: Trend bucket (day, week, month, year).
    currency: ISO currency code; payments in other currencies are ignored
        by every currency-scoped topic.
"""

from datetime import timedelta
from typing import Any, Mapping

from sqlalchemy import distinct, extract, func, select

from src.core.config import get_settings
from src.domains.analytics.datasource import AggregateQuery
from src.domains.analytics.numeric import (
    average,
    growth_rate,
    normalize,
    percentile,
    ratio,
    rounded,
)
from src.domains.analytics.periods import ResolvedPeriod, resolve_group_by
from src.domains.analytics.reports.base import (
    ReportBuilder,
    bucket,
    count_if,
    full_name,
    within,
)
from src.infrastructure.database.models import (
    Category,
    Course,
    Earning,
    Enrollment,
    Instructor,
    Payment,
    PaymentStatus,
    Student,
    User,
)

COMPLETED = PaymentStatus.COMPLETED.value
REFUND_STATUSES = (
    PaymentStatus.REFUNDED.value,
    PaymentStatus.PARTIALLY_REFUNDED.value,
)

FORECAST_LOOKBACK = timedelta(days=90)
FORECAST_DAYS = 7

HIGH_VALUE = 10000
MEDIUM_VALUE = 2000


def customer_segment(total_spent: Any) -> str:
    """Value segment for one customer's total spend."""
    spent = normalize(total_spent)
    if spent > HIGH_VALUE:
        return "High Value"
    if spent >= MEDIUM_VALUE:
        return "Medium Value"
    return "Low Value"


def change_over(current: Any, previous: Any) -> float | None:
    """Percent change against a lagged value, None when there is no base."""
    if not normalize(previous):
        return None
    return rounded(growth_rate(normalize(current), normalize(previous)))


class RevenueReport(ReportBuilder):
    """Builder for the revenue breakdown."""

    report_type = "revenue"

    def canonical_filters(self, filters: Mapping[str, Any]) -> dict[str, Any]:
        currency = filters.get("currency") or get_settings().analytics.default_currency
        return {
            "groupBy": resolve_group_by(filters.get("groupBy")),
            "currency": str(currency).strip().upper(),
        }

    def queries(
        self,
        period: ResolvedPeriod,
        filters: Mapping[str, Any],
    ) -> list[AggregateQuery]:
        start, now = period.start, period.end
        currency = filters["currency"]

        completed = (
            (Payment.status == COMPLETED)
            & (Payment.currency == currency)
            & (Payment.created_at >= start)
        )

        trend = bucket(filters["groupBy"], Payment.created_at)
        trends = (
            select(
                trend.label("date"),
                func.sum(Payment.amount).label("total_revenue"),
                func.sum(Payment.original_amount).label("gross_revenue"),
                func.sum(Payment.discount_amount).label("total_discounts"),
                func.sum(Payment.tax).label("total_tax"),
                func.count(distinct(Payment.id)).label("transactions"),
                func.count(distinct(Enrollment.course_id)).label("unique_courses"),
                func.avg(Payment.amount).label("avg_transaction"),
            )
            .select_from(Payment)
            .outerjoin(Enrollment, Enrollment.payment_id == Payment.id)
            .where(completed)
            .group_by(trend)
            .order_by(trend)
        )

        previous_total = select(func.coalesce(func.sum(Payment.amount), 0)).where(
            Payment.status == COMPLETED,
            Payment.currency == currency,
            within(Payment.created_at, period.previous_start, start),
        )

        revenue = func.sum(Payment.amount)
        categories = (
            select(
                Category.name.label("category"),
                revenue.label("revenue"),
                func.count(distinct(Payment.id)).label("transactions"),
                func.avg(Payment.amount).label("avg_transaction"),
                func.sum(Payment.discount_amount).label("total_discounts"),
                func.count(distinct(Course.instructor_id)).label("unique_instructors"),
            )
            .select_from(Payment)
            .join(Enrollment, Enrollment.payment_id == Payment.id)
            .join(Course, Enrollment.course_id == Course.id)
            .join(Category, Course.category_id == Category.id)
            .where(completed)
            .group_by(Category.name)
            .order_by(revenue.desc())
        )

        customers = (
            select(
                Enrollment.student_id.label("student_id"),
                func.min(Payment.created_at).label("first_purchase"),
                revenue.label("total_spent"),
                func.count(distinct(Payment.id)).label("purchases"),
            )
            .select_from(Payment)
            .join(Enrollment, Enrollment.payment_id == Payment.id)
            .where(completed)
            .group_by(Enrollment.student_id)
            .order_by(revenue.desc())
            .limit(100)
        )

        instructors = (
            select(
                Instructor.id.label("id"),
                full_name().label("name"),
                revenue.label("gross_revenue"),
                func.sum(Earning.amount).label("instructor_earnings"),
                func.sum(Earning.commission).label("commission"),
                func.count(distinct(Payment.id)).label("transactions"),
                func.count(distinct(Course.id)).label("courses_sold"),
                func.avg(Payment.amount).label("avg_sale"),
            )
            .select_from(Instructor)
            .join(User, Instructor.user_id == User.id)
            .join(Course, Course.instructor_id == Instructor.id)
            .join(Enrollment, Enrollment.course_id == Course.id)
            .join(Payment, Enrollment.payment_id == Payment.id)
            .outerjoin(
                Earning,
                (Earning.instructor_id == Instructor.id) & (Earning.payment_id == Payment.id),
            )
            .where(completed)
            .group_by(Instructor.id, User.first_name, User.last_name)
            .order_by(revenue.desc())
            .limit(20)
        )

        total_amount = func.sum(Payment.amount)
        methods = (
            select(
                Payment.method.label("method"),
                Payment.gateway.label("gateway"),
                func.count(Payment.id).label("transactions"),
                total_amount.label("total_amount"),
                func.avg(Payment.amount).label("avg_amount"),
                count_if(Payment.status == PaymentStatus.FAILED.value).label("failed"),
                count_if(Payment.status == COMPLETED).label("completed"),
            )
            .where(Payment.currency == currency, Payment.created_at >= start)
            .group_by(Payment.method, Payment.gateway)
            .order_by(total_amount.desc().nulls_last())
        )

        refunded = (
            Payment.status.in_(REFUND_STATUSES)
            & (Payment.currency == currency)
            & (Payment.created_at >= start)
        )
        completed_in_period = (
            select(func.count(Payment.id)).where(completed).scalar_subquery()
        )
        refunds = select(
            func.count(Payment.id).label("total_refunds"),
            func.sum(Payment.refund_amount).label("total_refund_amount"),
            func.avg(Payment.refund_amount).label("avg_refund_amount"),
            completed_in_period.label("completed_payments"),
        ).where(refunded)

        reason_count = func.count(Payment.id)
        refund_reasons = (
            select(
                Payment.refund_reason.label("reason"),
                reason_count.label("refunds"),
            )
            .where(refunded, Payment.refund_reason.is_not(None))
            .group_by(Payment.refund_reason)
            .order_by(reason_count.desc())
            .limit(5)
        )

        geographic = (
            select(
                User.country.label("country"),
                revenue.label("revenue"),
                func.count(distinct(Payment.id)).label("transactions"),
                func.count(distinct(Enrollment.student_id)).label("customers"),
                func.avg(Payment.amount).label("avg_transaction"),
            )
            .select_from(Payment)
            .join(Enrollment, Enrollment.payment_id == Payment.id)
            .join(Student, Enrollment.student_id == Student.id)
            .join(User, Student.user_id == User.id)
            .where(completed, User.country.is_not(None))
            .group_by(User.country)
            .order_by(revenue.desc())
            .limit(15)
        )

        year = extract("year", Payment.created_at)
        month = extract("month", Payment.created_at)
        seasonality = (
            select(
                year.label("year"),
                month.label("month"),
                func.sum(Payment.amount).label("revenue"),
                func.count(Payment.id).label("transactions"),
                func.avg(Payment.amount).label("avg_transaction"),
            )
            .where(completed, Payment.created_at < now)
            .group_by(year, month)
            .order_by(year, month)
        )

        commissions = select(
            func.sum(Earning.amount).label("instructor_earnings"),
            func.sum(Earning.commission).label("platform_commission"),
            func.sum(Earning.platform_fee).label("platform_fees"),
            func.avg(Earning.commission).label("avg_commission"),
            func.count(Earning.id).label("payouts"),
        ).where(Earning.currency == currency, Earning.created_at >= start)

        # LAG over days with sales, not calendar days.
        day = bucket("day", Payment.created_at)
        daily = (
            select(
                day.label("revenue_date"),
                func.sum(Payment.amount).label("revenue"),
            )
            .where(
                Payment.status == COMPLETED,
                Payment.currency == currency,
                Payment.created_at >= start - FORECAST_LOOKBACK,
            )
            .group_by(day)
            .cte("daily_revenue")
        )
        by_date = daily.c.revenue_date
        forecast = (
            select(
                by_date,
                daily.c.revenue,
                func.lag(daily.c.revenue, 7).over(order_by=by_date).label("previous_week"),
                func.lag(daily.c.revenue, 30).over(order_by=by_date).label("previous_month"),
            )
            .order_by(by_date.desc())
            .limit(30)
        )

        return [
            AggregateQuery("trends", trends),
            AggregateQuery("previous_revenue", previous_total, "scalar"),
            AggregateQuery("categories", categories),
            AggregateQuery("customers", customers),
            AggregateQuery("instructors", instructors),
            AggregateQuery("payment_methods", methods),
            AggregateQuery("refunds", refunds, "row"),
            AggregateQuery("refund_reasons", refund_reasons),
            AggregateQuery("geographic", geographic),
            AggregateQuery("seasonality", seasonality),
            AggregateQuery("commissions", commissions, "row"),
            AggregateQuery("forecast", forecast),
        ]

    def fold(
        self,
        results: Mapping[str, Any],
        period: ResolvedPeriod,
        filters: Mapping[str, Any],
    ) -> dict[str, Any]:
        trends = results["trends"]
        total_revenue = sum(normalize(row["total_revenue"]) for row in trends)
        previous_revenue = normalize(results["previous_revenue"])

        customers = results["customers"]
        spend = [normalize(row["total_spent"]) for row in customers]
        segments: dict[str, list[int | float]] = {
            "High Value": [],
            "Medium Value": [],
            "Low Value": [],
        }
        for value in spend:
            segments[customer_segment(value)].append(value)

        refunds = results["refunds"]
        total_refunds = normalize(refunds.get("total_refunds"))
        commissions = results["commissions"]

        return {
            "overview": {
                "totalRevenue": rounded(total_revenue),
                "previousRevenue": rounded(previous_revenue),
                "revenueGrowth": rounded(growth_rate(total_revenue, previous_revenue)),
                "grossRevenue": rounded(sum(normalize(row["gross_revenue"]) for row in trends)),
                "totalDiscounts": rounded(
                    sum(normalize(row["total_discounts"]) for row in trends)
                ),
                "totalTax": rounded(sum(normalize(row["total_tax"]) for row in trends)),
                "totalTransactions": sum(normalize(row["transactions"]) for row in trends),
                "avgTransactionValue": average(row["avg_transaction"] for row in trends),
            },
            "trends": [
                {
                    "date": row["date"],
                    "totalRevenue": rounded(row["total_revenue"]),
                    "grossRevenue": rounded(row["gross_revenue"]),
                    "discounts": rounded(row["total_discounts"]),
                    "tax": rounded(row["total_tax"]),
                    "transactions": normalize(row["transactions"]),
                    "uniqueCourses": normalize(row["unique_courses"]),
                    "avgTransactionValue": rounded(row["avg_transaction"]),
                }
                for row in trends
            ],
            "categoryBreakdown": [
                {
                    "category": row["category"],
                    "revenue": rounded(row["revenue"]),
                    "transactions": normalize(row["transactions"]),
                    "avgTransaction": rounded(row["avg_transaction"]),
                    "discounts": rounded(row["total_discounts"]),
                    "uniqueInstructors": normalize(row["unique_instructors"]),
                    "discountRate": ratio(row["total_discounts"], row["revenue"]),
                }
                for row in results["categories"]
            ],
            "customerLifetimeValue": {
                "overview": {
                    "customers": len(customers),
                    "avgLifetimeValue": average(spend),
                    "avgPurchaseCount": average(
                        (row["purchases"] for row in customers), 1
                    ),
                },
                "segments": [
                    {
                        "segment": name,
                        "customers": len(values),
                        "avgSpent": average(values),
                    }
                    for name, values in segments.items()
                ],
                "spendPercentiles": {
                    "p50": rounded(percentile(spend, 50)),
                    "p75": rounded(percentile(spend, 75)),
                    "p90": rounded(percentile(spend, 90)),
                },
            },
            "instructorRevenue": [
                {
                    "id": row["id"],
                    "name": row["name"],
                    "grossRevenue": rounded(row["gross_revenue"]),
                    "instructorEarnings": rounded(row["instructor_earnings"]),
                    "commission": rounded(row["commission"]),
                    "commissionRate": ratio(row["commission"], row["gross_revenue"]),
                    "transactions": normalize(row["transactions"]),
                    "coursesSold": normalize(row["courses_sold"]),
                    "avgSaleAmount": rounded(row["avg_sale"]),
                }
                for row in results["instructors"]
            ],
            "paymentMethods": [
                {
                    "method": row["method"],
                    "gateway": row["gateway"],
                    "transactions": normalize(row["transactions"]),
                    "totalAmount": rounded(row["total_amount"]),
                    "avgAmount": rounded(row["avg_amount"]),
                    "failedTransactions": normalize(row["failed"]),
                    "successRate": ratio(row["completed"], row["transactions"]),
                }
                for row in results["payment_methods"]
            ],
            "refunds": {
                "totalRefunds": total_refunds,
                "totalRefundAmount": rounded(refunds.get("total_refund_amount")),
                "avgRefundAmount": rounded(refunds.get("avg_refund_amount")),
                "refundRate": ratio(total_refunds, refunds.get("completed_payments")),
                "topReasons": [
                    {"reason": row["reason"], "count": normalize(row["refunds"])}
                    for row in results["refund_reasons"]
                ],
            },
            "geographic": [
                {
                    "country": row["country"],
                    "revenue": rounded(row["revenue"]),
                    "transactions": normalize(row["transactions"]),
                    "uniqueCustomers": normalize(row["customers"]),
                    "avgTransactionValue": rounded(row["avg_transaction"]),
                    "revenuePerCustomer": (
                        rounded(normalize(row["revenue"]) / normalize(row["customers"]))
                        if normalize(row["customers"])
                        else 0
                    ),
                }
                for row in results["geographic"]
            ],
            "seasonality": [
                {
                    "year": normalize(row["year"]),
                    "month": normalize(row["month"]),
                    "revenue": rounded(row["revenue"]),
                    "transactions": normalize(row["transactions"]),
                    "avgTransaction": rounded(row["avg_transaction"]),
                }
                for row in results["seasonality"]
            ],
            "commissions": {
                "totalInstructorEarnings": rounded(commissions.get("instructor_earnings")),
                "totalPlatformCommission": rounded(commissions.get("platform_commission")),
                "totalPlatformFees": rounded(commissions.get("platform_fees")),
                "avgCommissionPerSale": rounded(commissions.get("avg_commission")),
                "totalPayouts": normalize(commissions.get("payouts")),
            },
            "forecasting": {
                "recentTrends": [
                    {
                        "date": row["revenue_date"],
                        "revenue": rounded(row["revenue"]),
                        "weekOverWeekGrowth": change_over(row["revenue"], row["previous_week"]),
                        "monthOverMonthGrowth": change_over(
                            row["revenue"], row["previous_month"]
                        ),
                    }
                    for row in results["forecast"][:FORECAST_DAYS]
                ],
            },
            "currency": filters["currency"],
            "groupBy": filters["groupBy"],
        }
