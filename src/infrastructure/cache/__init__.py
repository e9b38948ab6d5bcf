# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cache infrastructure using Redis.

This package provides the Redis client that backs the report cache and the
export spooler. Documents are stored as JSON strings with an expiry.

Example:
    from src.infrastructure.cache import init_redis, get_redis

    # Initialize at application startup
    await init_redis(settings)

    redis = get_redis()
    await redis.set_json("educademy:export:analytics_ab12", record, 3600)

    # Cleanup at shutdown
    await close_redis()
"""

from src.infrastructure.cache.redis_client import (
    RedisClient,
    RedisError,
    close_redis,
    get_redis,
    init_redis,
)

__all__ = [
    "RedisClient",
    "RedisError",
    "close_redis",
    "get_redis",
    "init_redis",
]
