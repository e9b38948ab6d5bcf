# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the platform database connection.

These tests require a running PostgreSQL instance.
Run with: pytest tests/integration/test_postgres_connection.py -v

Prerequisites:
    - PostgreSQL running at localhost:5432
    - Database 'educademy' exists
    - User 'educademy' with password from DB_PASSWORD
"""

from decimal import Decimal

import pytest
from sqlalchemy import literal, select, text

from src.core.config.settings import Settings, clear_settings_cache
from src.domains.analytics import AggregateQuery, SQLAlchemyDataSource
from src.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    get_session,
    get_sessionmaker,
    init_database,
)


@pytest.fixture
def settings() -> Settings:
    """Provide fresh settings for each test."""
    clear_settings_cache()
    return Settings()


@pytest.fixture
async def initialized_database(settings: Settings) -> None:
    """Initialize and cleanup the database connection."""
    await init_database(settings)
    yield
    await close_database()


@pytest.mark.integration
class TestDatabaseInitialization:
    """Tests for database initialization."""

    async def test_init_creates_sessionmaker(self, settings: Settings) -> None:
        """Test that initialization creates the sessionmaker."""
        await init_database(settings)

        try:
            assert get_sessionmaker() is not None
        finally:
            await close_database()

    async def test_close_clears_state(self, settings: Settings) -> None:
        """Test that close clears the module state."""
        await init_database(settings)
        await close_database()

        with pytest.raises(DatabaseError):
            get_sessionmaker()


@pytest.mark.integration
class TestDatabaseConnection:
    """Tests for database queries."""

    async def test_check_connection_returns_true_when_connected(
        self, initialized_database: None
    ) -> None:
        """Test connection check with an initialized pool."""
        assert await check_database_connection() is True

    async def test_session_can_execute_query(self, initialized_database: None) -> None:
        """Test that a session executes a query."""
        async with get_session() as session:
            result = await session.execute(text("SELECT 1"))

        assert result.scalar() == 1

    async def test_sqlalchemy_errors_are_wrapped(self, initialized_database: None) -> None:
        """Test that failed statements surface as DatabaseError."""
        with pytest.raises(DatabaseError):
            async with get_session() as session:
                await session.execute(text("SELECT * FROM no_such_table"))

    async def test_data_source_cleans_values(self, initialized_database: None) -> None:
        """Test that driver values come back as plain Python values."""
        data_source = SQLAlchemyDataSource(get_session)

        scalar = await data_source.run(
            AggregateQuery("amount", select(literal(Decimal("12.50"))), "scalar")
        )
        row = await data_source.run(
            AggregateQuery(
                "row",
                select(literal(3).label("count"), literal(Decimal("4.00")).label("total")),
                "row",
            )
        )

        assert scalar == 12.5
        assert row == {"count": 3, "total": 4}


@pytest.mark.integration
class TestDatabaseErrors:
    """Tests for database error handling."""

    async def test_get_sessionmaker_without_init_raises_error(self) -> None:
        """Test that get_sessionmaker without init raises error."""
        await close_database()

        with pytest.raises(DatabaseError) as exc_info:
            get_sessionmaker()

        assert "not initialized" in str(exc_info.value)

    async def test_check_connection_returns_false_when_not_initialized(self) -> None:
        """Test connection check without an initialized pool."""
        await close_database()

        assert await check_database_connection() is False
