# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Report cache.

Assembled report documents are stored in Redis under a key derived from the
report type, the period token and the canonical filters. Keys are built from
sorted items, so the same request always lands on the same key regardless of
how its filters were ordered.

Key layout:
    {prefix}:analytics:{report_type}:{k1}={v1}|{k2}={v2}|...

Example:
    >>> build_cache_key("educademy", "users", "7d", {"segment": "all", "groupBy": "day"})
    'educademy:analytics:users:groupBy=day|period=7d|segment=all'
"""

import logging
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from src.infrastructure.cache import RedisClient

logger = logging.getLogger(__name__)


def build_cache_key(
    prefix: str,
    report_type: str,
    period: str | None,
    filters: Mapping[str, Any] | None = None,
) -> str:
    """Derive the cache key for one report request.

    None values are dropped, so an absent filter and an explicit null share
    a key. The period is treated as one more filter named "period".

    Args:
        prefix: Namespace for the deployment.
        report_type: Report identifier.
        period: Period token, or None for reports without a period.
        filters: Canonical filters of the request.

    Returns:
        Cache key string.
    """
    parts = {"period": period, **(filters or {})}
    items = sorted((key, value) for key, value in parts.items() if value is not None)
    suffix = "|".join(f"{key}={value}" for key, value in items)
    return f"{prefix}:analytics:{report_type}:{suffix}"


class ReportCache:
    """Read-through cache of report documents.

    Attributes:
        store: Redis client used for get_json/set_json.
        prefix: Key namespace.
        ttls: TTL in seconds keyed by report type.
        default_ttl: TTL used for report types missing from ttls.
    """

    def __init__(
        self,
        store: "RedisClient",
        prefix: str,
        ttls: Mapping[str, int],
        default_ttl: int = 3600,
    ) -> None:
        self.store = store
        self.prefix = prefix
        self.ttls = dict(ttls)
        self.default_ttl = default_ttl

    def key_for(
        self,
        report_type: str,
        period: str | None,
        filters: Mapping[str, Any] | None = None,
    ) -> str:
        return build_cache_key(self.prefix, report_type, period, filters)

    def ttl_for(self, report_type: str) -> int:
        return self.ttls.get(report_type, self.default_ttl)

    async def get(
        self,
        report_type: str,
        period: str | None,
        filters: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Return the cached document, or None on a miss.

        Entries that are not JSON objects are treated as misses.
        """
        key = self.key_for(report_type, period, filters)
        document = await self.store.get_json(key)
        if document is None:
            return None
        if not isinstance(document, dict):
            logger.warning("Discarding malformed cache entry %s", key)
            return None
        return document

    async def put(
        self,
        report_type: str,
        period: str | None,
        filters: Mapping[str, Any] | None,
        document: Mapping[str, Any],
        ttl_seconds: int | None = None,
    ) -> str:
        """Store a document under its key, overwriting any previous entry.

        Returns:
            The key written.
        """
        key = self.key_for(report_type, period, filters)
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_for(report_type)
        await self.store.set_json(key, document, ttl)
        logger.debug("Cached %s report under %s (ttl=%ds)", report_type, key, ttl)
        return key
