# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Export projections.

Every list export type has two static projections: the basic one and the
detailed one selected by includeDetails. Column labels use dots to describe
nesting ("category.name"); the spooler turns them into nested objects.

The dashboard export is not a row projection: it is five headline metrics
(see DASHBOARD_METRICS), read with the same statements as the dashboard
report totals.
"""

from typing import Any, Mapping

from sqlalchemy import func, select
from sqlalchemy.orm import aliased

from src.domains.analytics.datasource import AggregateQuery
from src.domains.analytics.periods import ResolvedPeriod
from src.domains.analytics.reports.base import full_name
from src.infrastructure.database.models import (
    Category,
    Course,
    Enrollment,
    Instructor,
    Lesson,
    LessonCompletion,
    Payment,
    PaymentStatus,
    Section,
    Student,
    User,
)

EXPORT_TYPES = (
    "dashboard",
    "users",
    "courses",
    "revenue",
    "engagement",
    "instructors",
    "students",
)
EXPORT_FORMATS = ("json", "csv")

# (metric label, query name, value type)
DASHBOARD_METRICS: tuple[tuple[str, str, str], ...] = (
    ("Total Users", "total_users", "count"),
    ("Total Courses", "total_courses", "count"),
    ("Total Revenue", "total_revenue", "revenue"),
    ("Total Enrollments", "total_enrollments", "count"),
    ("Active Users (30 days)", "active_users", "count"),
)


# ========== Row projections ==========


def _users(period: ResolvedPeriod, details: bool, filters: Mapping[str, Any]):
    columns = [
        User.id.label("id"),
        User.email.label("email"),
        User.first_name.label("firstName"),
        User.last_name.label("lastName"),
        User.role.label("role"),
        User.created_at.label("createdAt"),
        User.last_login.label("lastLogin"),
        User.is_active.label("isActive"),
        User.is_verified.label("isVerified"),
        User.country.label("country"),
        User.language.label("language"),
    ]
    statement = select(*columns).select_from(User)
    if details:
        statement = (
            statement.add_columns(
                Student.skill_level.label("studentProfile.skillLevel"),
                Student.total_learning_time.label("studentProfile.totalLearningTime"),
                Student.learning_goals.label("studentProfile.learningGoals"),
                Instructor.rating.label("instructorProfile.rating"),
                Instructor.total_students.label("instructorProfile.totalStudents"),
                Instructor.total_courses.label("instructorProfile.totalCourses"),
                Instructor.total_revenue.label("instructorProfile.totalRevenue"),
                Instructor.is_verified.label("instructorProfile.isVerified"),
            )
            .outerjoin(Student, Student.user_id == User.id)
            .outerjoin(Instructor, Instructor.user_id == User.id)
        )
    return statement.where(User.created_at >= period.start).order_by(User.created_at.desc())


def _courses(period: ResolvedPeriod, details: bool, filters: Mapping[str, Any]):
    instructor_user = aliased(User)
    statement = (
        select(
            Course.id.label("id"),
            Course.title.label("title"),
            Course.status.label("status"),
            Course.level.label("level"),
            Course.price.label("price"),
            Course.discount_price.label("discountPrice"),
            Course.created_at.label("createdAt"),
            Course.published_at.label("publishedAt"),
            Course.total_enrollments.label("totalEnrollments"),
            Course.total_revenue.label("totalRevenue"),
            Course.average_rating.label("averageRating"),
            Course.total_ratings.label("totalRatings"),
            Course.completion_rate.label("completionRate"),
            Course.language.label("language"),
            Category.name.label("category.name"),
            full_name(instructor_user).label("instructor.name"),
        )
        .select_from(Course)
        .join(Category, Course.category_id == Category.id)
        .join(Instructor, Course.instructor_id == Instructor.id)
        .join(instructor_user, Instructor.user_id == instructor_user.id)
        .where(Course.created_at >= period.start)
    )
    if details:
        statement = statement.add_columns(
            Course.sections_count.label("sectionsCount"),
            Course.total_lessons.label("totalLessons"),
            Course.total_quizzes.label("totalQuizzes"),
            Course.total_assignments.label("totalAssignments"),
        )
    if filters.get("categoryId"):
        statement = statement.where(Course.category_id == filters["categoryId"])
    if filters.get("instructorId"):
        statement = statement.where(Course.instructor_id == filters["instructorId"])
    return statement.order_by(Course.created_at.desc())


def _revenue(period: ResolvedPeriod, details: bool, filters: Mapping[str, Any]):
    statement = select(
        Payment.id.label("id"),
        Payment.amount.label("amount"),
        Payment.original_amount.label("originalAmount"),
        Payment.discount_amount.label("discountAmount"),
        Payment.tax.label("tax"),
        Payment.currency.label("currency"),
        Payment.status.label("status"),
        Payment.method.label("method"),
        Payment.gateway.label("gateway"),
        Payment.created_at.label("createdAt"),
    ).select_from(Payment)
    if details:
        # One row per enrollment funded by the payment
        student_user = aliased(User)
        instructor_user = aliased(User)
        statement = (
            statement.add_columns(
                Course.title.label("course.title"),
                Category.name.label("course.category"),
                full_name(instructor_user).label("course.instructor"),
                student_user.country.label("student.country"),
            )
            .outerjoin(Enrollment, Enrollment.payment_id == Payment.id)
            .outerjoin(Course, Enrollment.course_id == Course.id)
            .outerjoin(Category, Course.category_id == Category.id)
            .outerjoin(Instructor, Course.instructor_id == Instructor.id)
            .outerjoin(instructor_user, Instructor.user_id == instructor_user.id)
            .outerjoin(Student, Enrollment.student_id == Student.id)
            .outerjoin(student_user, Student.user_id == student_user.id)
        )
    return statement.where(
        Payment.created_at >= period.start,
        Payment.status == PaymentStatus.COMPLETED.value,
    ).order_by(Payment.created_at.desc())


def _engagement(period: ResolvedPeriod, details: bool, filters: Mapping[str, Any]):
    statement = (
        select(
            LessonCompletion.id.label("id"),
            LessonCompletion.completed_at.label("completedAt"),
            LessonCompletion.time_spent.label("timeSpent"),
            LessonCompletion.watch_time.label("watchTime"),
            User.email.label("student.email"),
            User.first_name.label("student.firstName"),
            User.last_name.label("student.lastName"),
            Lesson.title.label("lesson.title"),
            Lesson.type.label("lesson.type"),
            Course.title.label("course.title"),
        )
        .select_from(LessonCompletion)
        .join(Student, LessonCompletion.student_id == Student.id)
        .join(User, Student.user_id == User.id)
        .join(Lesson, LessonCompletion.lesson_id == Lesson.id)
        .join(Section, Lesson.section_id == Section.id)
        .join(Course, Section.course_id == Course.id)
    )
    if details:
        statement = statement.add_columns(
            User.country.label("student.country"),
            Lesson.duration.label("lesson.duration"),
            Section.title.label("lesson.section"),
            Category.name.label("course.category"),
        ).join(Category, Course.category_id == Category.id)
    return statement.where(LessonCompletion.completed_at >= period.start).order_by(
        LessonCompletion.completed_at.desc()
    )


def _instructors(period: ResolvedPeriod, details: bool, filters: Mapping[str, Any]):
    statement = (
        select(
            Instructor.id.label("id"),
            Instructor.created_at.label("createdAt"),
            Instructor.rating.label("rating"),
            Instructor.total_students.label("totalStudents"),
            Instructor.total_courses.label("totalCourses"),
            Instructor.total_revenue.label("totalRevenue"),
            Instructor.is_verified.label("isVerified"),
            User.first_name.label("user.firstName"),
            User.last_name.label("user.lastName"),
            User.email.label("user.email"),
            User.country.label("user.country"),
        )
        .select_from(Instructor)
        .join(User, Instructor.user_id == User.id)
    )
    if details:
        course_titles = (
            select(func.array_agg(Course.title))
            .where(Course.instructor_id == Instructor.id)
            .scalar_subquery()
        )
        statement = statement.add_columns(
            Instructor.years_experience.label("yearsExperience"),
            User.created_at.label("user.createdAt"),
            User.last_login.label("user.lastLogin"),
            course_titles.label("courses"),
        )
    return statement.where(Instructor.created_at >= period.start).order_by(
        Instructor.total_revenue.desc()
    )


def _students(period: ResolvedPeriod, details: bool, filters: Mapping[str, Any]):
    enrollment_count = (
        select(func.count(Enrollment.id))
        .where(Enrollment.student_id == Student.id)
        .scalar_subquery()
    )
    statement = (
        select(
            Student.id.label("id"),
            Student.created_at.label("createdAt"),
            Student.skill_level.label("skillLevel"),
            Student.total_learning_time.label("totalLearningTime"),
            User.first_name.label("user.firstName"),
            User.last_name.label("user.lastName"),
            User.email.label("user.email"),
            User.country.label("user.country"),
            enrollment_count.label("enrollments"),
        )
        .select_from(Student)
        .join(User, Student.user_id == User.id)
    )
    if details:
        enrolled_courses = (
            select(func.array_agg(Course.title))
            .select_from(Enrollment)
            .join(Course, Enrollment.course_id == Course.id)
            .where(Enrollment.student_id == Student.id)
            .scalar_subquery()
        )
        statement = statement.add_columns(
            Student.learning_goals.label("learningGoals"),
            Student.interests.label("interests"),
            User.created_at.label("user.createdAt"),
            User.last_login.label("user.lastLogin"),
            enrolled_courses.label("enrolledCourses"),
        )
    return statement.where(Student.created_at >= period.start).order_by(
        Student.created_at.desc()
    )


ROW_PROJECTIONS = {
    "users": _users,
    "courses": _courses,
    "revenue": _revenue,
    "engagement": _engagement,
    "instructors": _instructors,
    "students": _students,
}


def export_query(
    export_type: str,
    period: ResolvedPeriod,
    include_details: bool,
    filters: Mapping[str, Any],
    row_limit: int,
) -> AggregateQuery:
    """Row query for a list export type, capped at row_limit rows."""
    statement = ROW_PROJECTIONS[export_type](period, include_details, filters)
    return AggregateQuery(f"export_{export_type}", statement.limit(row_limit))
