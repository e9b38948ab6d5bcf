# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for Redis cache connection.

These tests require a running Redis instance.
Run with: pytest tests/integration/test_redis_connection.py -v

Prerequisites:
    - Redis running at localhost:6379
"""

import pytest

from src.core.config.settings import Settings, clear_settings_cache
from src.domains.analytics import ReportCache
from src.infrastructure.cache.redis_client import (
    RedisClient,
    RedisError,
    close_redis,
    get_redis,
    init_redis,
)


@pytest.fixture
def settings() -> Settings:
    """Provide fresh settings for each test."""
    clear_settings_cache()
    return Settings()


@pytest.fixture
async def redis_client(settings: Settings) -> RedisClient:
    """Provide a Redis client for testing."""
    client = RedisClient(settings)
    await client.connect()
    yield client
    await client.close()


@pytest.mark.integration
class TestRedisInitialization:
    """Tests for Redis initialization."""

    async def test_init_creates_client(self, settings: Settings) -> None:
        """Test that initialization creates the Redis client."""
        await init_redis(settings)

        try:
            client = get_redis()
            assert client is not None
        finally:
            await close_redis()

    async def test_close_clears_state(self, settings: Settings) -> None:
        """Test that close clears the module state."""
        await init_redis(settings)
        await close_redis()

        with pytest.raises(RedisError) as exc_info:
            get_redis()

        assert "not initialized" in str(exc_info.value)


@pytest.mark.integration
class TestRedisOperations:
    """Tests for JSON document operations."""

    async def test_set_and_get_json(self, redis_client: RedisClient) -> None:
        """Test set and get with JSON serialization."""
        data = {"name": "test", "count": 42, "active": True, "items": [1.5, None]}
        await redis_client.set_json("test:json", data, 60)

        value = await redis_client.get_json("test:json")

        assert value == data

        # Cleanup
        await redis_client.delete("test:json")

    async def test_set_with_expiration(self, redis_client: RedisClient) -> None:
        """Test set with expiration."""
        await redis_client.set_json("test:expire", {"v": 1}, 3600)

        ttl = await redis_client.ttl("test:expire")
        assert 0 < ttl <= 3600

        # Cleanup
        await redis_client.delete("test:expire")

    async def test_missing_key(self, redis_client: RedisClient) -> None:
        """Test that a missing key reads as None."""
        assert await redis_client.get_json("test:missing:12345") is None

    async def test_delete(self, redis_client: RedisClient) -> None:
        """Test delete operation."""
        await redis_client.set_json("test:delete", "value", 60)

        assert await redis_client.delete("test:delete") is True
        assert await redis_client.delete("test:delete") is False

    async def test_ping(self, redis_client: RedisClient) -> None:
        """Test ping health check."""
        assert await redis_client.ping() is True

    async def test_report_cache_round_trip(self, redis_client: RedisClient) -> None:
        """Test the report cache against a real server."""
        cache = ReportCache(redis_client, "test", {"users": 60})

        key = await cache.put("users", "7d", {"segment": "all"}, {"growth": []})

        assert await cache.get("users", "7d", {"segment": "all"}) == {"growth": []}
        assert 0 < await redis_client.ttl(key) <= 60

        # Cleanup
        await redis_client.delete(key)


@pytest.mark.integration
class TestRedisErrors:
    """Tests for Redis error handling."""

    async def test_get_without_connect_raises_error(
        self, settings: Settings
    ) -> None:
        """Test that operations without connect raise error."""
        client = RedisClient(settings)

        with pytest.raises(RedisError) as exc_info:
            await client.get_json("test")

        assert "not connected" in str(exc_info.value)

    async def test_ping_without_connect_is_false(self, settings: Settings) -> None:
        """Test that ping reports an unconnected client as unreachable."""
        assert await RedisClient(settings).ping() is False

    async def test_get_redis_without_init_raises_error(self) -> None:
        """Test that get_redis without init raises error."""
        await close_redis()

        with pytest.raises(RedisError) as exc_info:
            get_redis()

        assert "not initialized" in str(exc_info.value)
