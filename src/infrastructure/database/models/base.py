# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Declarative base for the platform tables.

The platform schema uses quoted PascalCase table names and camelCase column
names. Attributes are snake_case and map onto those columns explicitly.
"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base for read-only platform models."""

    pass


class IdMixin:
    """String primary key used by every platform table."""

    id: Mapped[str] = mapped_column(String, primary_key=True)


class CreatedAtMixin:
    """Creation timestamp column."""

    created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True))
