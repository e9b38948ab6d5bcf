# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Catalog tables: categories, courses, sections and lessons."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Float, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, CreatedAtMixin, IdMixin


class Category(IdMixin, Base):
    """Course category."""

    __tablename__ = "Category"

    name: Mapped[str] = mapped_column(String)


class Course(IdMixin, CreatedAtMixin, Base):
    """Course with denormalized counters maintained by the platform."""

    __tablename__ = "Course"

    title: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String)
    level: Mapped[str | None] = mapped_column(String, nullable=True)
    language: Mapped[str | None] = mapped_column(String, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    discount_price: Mapped[Decimal | None] = mapped_column(
        "discountPrice", Numeric(10, 2), nullable=True
    )
    category_id: Mapped[str] = mapped_column("categoryId", ForeignKey("Category.id"))
    instructor_id: Mapped[str] = mapped_column("instructorId", ForeignKey("Instructor.id"))
    average_rating: Mapped[float] = mapped_column("averageRating", Float)
    total_ratings: Mapped[int] = mapped_column("totalRatings", Integer)
    total_enrollments: Mapped[int] = mapped_column("totalEnrollments", Integer)
    total_revenue: Mapped[Decimal] = mapped_column("totalRevenue", Numeric(12, 2))
    completion_rate: Mapped[float] = mapped_column("completionRate", Float)
    sections_count: Mapped[int] = mapped_column("sectionsCount", Integer)
    total_lessons: Mapped[int] = mapped_column("totalLessons", Integer)
    total_quizzes: Mapped[int] = mapped_column("totalQuizzes", Integer)
    total_assignments: Mapped[int] = mapped_column("totalAssignments", Integer)
    published_at: Mapped[datetime | None] = mapped_column(
        "publishedAt", DateTime(timezone=True), nullable=True
    )


class Section(IdMixin, Base):
    """Ordered group of lessons inside a course."""

    __tablename__ = "Section"

    title: Mapped[str] = mapped_column(String)
    course_id: Mapped[str] = mapped_column("courseId", ForeignKey("Course.id"))


class Lesson(IdMixin, Base):
    """Single lesson."""

    __tablename__ = "Lesson"

    title: Mapped[str] = mapped_column(String)
    type: Mapped[str] = mapped_column(String)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    section_id: Mapped[str] = mapped_column("sectionId", ForeignKey("Section.id"))
