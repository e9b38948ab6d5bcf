# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning activity, session and support tables."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, CreatedAtMixin, IdMixin


class LessonCompletion(IdMixin, Base):
    """A student finishing a lesson."""

    __tablename__ = "LessonCompletion"

    student_id: Mapped[str] = mapped_column("studentId", ForeignKey("Student.id"))
    lesson_id: Mapped[str] = mapped_column("lessonId", ForeignKey("Lesson.id"))
    completed_at: Mapped[datetime] = mapped_column("completedAt", DateTime(timezone=True))
    time_spent: Mapped[int | None] = mapped_column("timeSpent", Integer, nullable=True)
    watch_time: Mapped[int | None] = mapped_column("watchTime", Integer, nullable=True)


class QuizAttempt(IdMixin, CreatedAtMixin, Base):
    """Graded or in-progress quiz attempt."""

    __tablename__ = "QuizAttempt"

    student_id: Mapped[str] = mapped_column("studentId", ForeignKey("Student.id"))
    quiz_id: Mapped[str] = mapped_column("quizId", String)
    percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(String)


class Review(IdMixin, CreatedAtMixin, Base):
    """Course review left by a student."""

    __tablename__ = "Review"

    course_id: Mapped[str] = mapped_column("courseId", ForeignKey("Course.id"))
    rating: Mapped[int] = mapped_column(Integer)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)


class UserSession(IdMixin, CreatedAtMixin, Base):
    """Login session. Mapped on the platform's "Session" table."""

    __tablename__ = "Session"

    user_id: Mapped[str] = mapped_column("userId", ForeignKey("User.id"))
    is_active: Mapped[bool] = mapped_column("isActive", Boolean)
    last_activity: Mapped[datetime | None] = mapped_column(
        "lastActivity", DateTime(timezone=True), nullable=True
    )
    session_duration: Mapped[int | None] = mapped_column(
        "sessionDuration", Integer, nullable=True
    )
    device_type: Mapped[str | None] = mapped_column("deviceType", String, nullable=True)


class UserActivity(IdMixin, CreatedAtMixin, Base):
    """Audit trail of user actions."""

    __tablename__ = "UserActivity"

    user_id: Mapped[str] = mapped_column("userId", ForeignKey("User.id"))
    action: Mapped[str] = mapped_column(String)
    session_time: Mapped[int | None] = mapped_column("sessionTime", Integer, nullable=True)


class SupportTicket(IdMixin, CreatedAtMixin, Base):
    """Help desk ticket."""

    __tablename__ = "SupportTicket"

    user_id: Mapped[str] = mapped_column("userId", ForeignKey("User.id"))
    status: Mapped[str] = mapped_column(String)
    priority: Mapped[str] = mapped_column(String)
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(
        "resolvedAt", DateTime(timezone=True), nullable=True
    )
