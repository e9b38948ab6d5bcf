# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the platform PostgreSQL database.

This package provides read-only SQLAlchemy async access to the e-learning
platform's transactional tables. The schema is owned by the platform
backend; the mapped classes in the models package only mirror it.

Example:
    from src.infrastructure.database import get_session
    from src.infrastructure.database.models import User

    async with get_session() as session:
        total = await session.scalar(select(func.count(User.id)))
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    get_session,
    get_sessionmaker,
    init_database,
)

__all__ = [
    "DatabaseError",
    "check_database_connection",
    "close_database",
    "get_session",
    "get_sessionmaker",
    "init_database",
]
