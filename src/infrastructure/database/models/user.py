# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User, student and instructor profile tables."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import ARRAY, Boolean, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, CreatedAtMixin, IdMixin


class UserRole(str, Enum):
    """Platform roles as stored in User.role."""

    STUDENT = "STUDENT"
    INSTRUCTOR = "INSTRUCTOR"
    ADMIN = "ADMIN"


class User(IdMixin, CreatedAtMixin, Base):
    """Platform account."""

    __tablename__ = "User"

    email: Mapped[str] = mapped_column(String)
    first_name: Mapped[str] = mapped_column("firstName", String)
    last_name: Mapped[str] = mapped_column("lastName", String)
    role: Mapped[str] = mapped_column(String)
    country: Mapped[str | None] = mapped_column(String, nullable=True)
    language: Mapped[str | None] = mapped_column(String, nullable=True)
    profile_image: Mapped[str | None] = mapped_column("profileImage", String, nullable=True)
    is_active: Mapped[bool] = mapped_column("isActive", Boolean)
    is_verified: Mapped[bool] = mapped_column("isVerified", Boolean)
    is_banned: Mapped[bool] = mapped_column("isBanned", Boolean)
    last_login: Mapped[datetime | None] = mapped_column(
        "lastLogin", DateTime(timezone=True), nullable=True
    )


class Student(IdMixin, CreatedAtMixin, Base):
    """Learner profile attached to a User."""

    __tablename__ = "Student"

    user_id: Mapped[str] = mapped_column("userId", ForeignKey("User.id"))
    skill_level: Mapped[str | None] = mapped_column("skillLevel", String, nullable=True)
    total_learning_time: Mapped[int] = mapped_column("totalLearningTime", Integer)
    learning_goals: Mapped[list[str]] = mapped_column("learningGoals", ARRAY(String))
    interests: Mapped[list[str]] = mapped_column(ARRAY(String))


class Instructor(IdMixin, CreatedAtMixin, Base):
    """Instructor profile attached to a User."""

    __tablename__ = "Instructor"

    user_id: Mapped[str] = mapped_column("userId", ForeignKey("User.id"))
    rating: Mapped[float] = mapped_column(Numeric(3, 2, asdecimal=False))
    total_students: Mapped[int] = mapped_column("totalStudents", Integer)
    total_courses: Mapped[int] = mapped_column("totalCourses", Integer)
    total_revenue: Mapped[Decimal] = mapped_column("totalRevenue", Numeric(12, 2))
    years_experience: Mapped[int | None] = mapped_column(
        "yearsExperience", Integer, nullable=True
    )
    is_verified: Mapped[bool] = mapped_column("isVerified", Boolean)
