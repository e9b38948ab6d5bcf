# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-only mappings of the platform's transactional tables.

The schema is owned and migrated by the platform backend. These classes are
only used to build aggregate SELECT statements.
"""

from src.infrastructure.database.models.activity import (
    LessonCompletion,
    QuizAttempt,
    Review,
    SupportTicket,
    UserActivity,
    UserSession,
)
from src.infrastructure.database.models.base import Base
from src.infrastructure.database.models.commerce import (
    Earning,
    Enrollment,
    Payment,
    PaymentStatus,
)
from src.infrastructure.database.models.course import Category, Course, Lesson, Section
from src.infrastructure.database.models.user import Instructor, Student, User, UserRole

__all__ = [
    "Base",
    # Accounts
    "User",
    "UserRole",
    "Student",
    "Instructor",
    # Catalog
    "Category",
    "Course",
    "Section",
    "Lesson",
    # Commerce
    "Enrollment",
    "Earning",
    "Payment",
    "PaymentStatus",
    # Activity
    "LessonCompletion",
    "QuizAttempt",
    "Review",
    "UserSession",
    "UserActivity",
    "SupportTicket",
]
