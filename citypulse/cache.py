"""
Redis-backed cache for organizer dashboard figures.

Dashboard stats are the only cached read: they aggregate every booking of
an organizer and are requested on each dashboard load. Entries live for a
short TTL and are dropped whenever one of the organizer's events or
bookings changes. Without Redis the service simply runs uncached.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError
from redis.exceptions import ConnectionError as RedisConnectionError

from .config import get_settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "citypulse"


def stats_key(organizer_id: UUID | str) -> str:
    return f"{KEY_PREFIX}:stats:organizer:{organizer_id}"


class DashboardStatsCache:
    """Per-organizer stats snapshots. Redis failures read as misses."""

    def __init__(self):
        self.client: Optional[Redis] = None
        self.pool: Optional[redis.ConnectionPool] = None

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def connect(self) -> None:
        settings = get_settings()
        try:
            self.pool = redis.ConnectionPool.from_url(
                settings.redis_url,
                max_connections=settings.redis_max_connections,
                retry_on_timeout=True,
                health_check_interval=30
            )
            self.client = Redis(connection_pool=self.pool)
            await self.client.ping()
            logger.info("Stats cache connected")
        except (RedisConnectionError, OSError) as e:
            logger.warning("Redis unavailable, dashboard stats will not be cached: %s", e)
            self.client = None

    async def disconnect(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
        if self.pool is not None:
            await self.pool.disconnect()
            self.pool = None

    async def get(self, organizer_id: UUID | str) -> Optional[Dict[str, Any]]:
        """Cached stats of the organizer, with ``total_sales`` as a Decimal."""
        if not self.enabled:
            return None

        try:
            raw = await self.client.get(stats_key(organizer_id))
        except RedisError as e:
            logger.warning("Stats cache read failed for %s: %s", organizer_id, e)
            return None
        if not raw:
            return None

        try:
            stats = json.loads(raw)
            stats["total_sales"] = Decimal(stats["total_sales"])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding unreadable stats entry for %s: %s", organizer_id, e)
            return None
        return stats

    async def put(self, organizer_id: UUID | str, stats: Dict[str, Any], ttl: int) -> None:
        if not self.enabled:
            return
        try:
            await self.client.setex(stats_key(organizer_id), ttl, json.dumps(stats, default=str))
        except RedisError as e:
            logger.warning("Stats cache write failed for %s: %s", organizer_id, e)

    async def invalidate(self, organizer_id: UUID | str) -> None:
        if not self.enabled:
            return
        try:
            await self.client.delete(stats_key(organizer_id))
            logger.debug("Invalidated stats cache for organizer %s", organizer_id)
        except RedisError as e:
            logger.warning("Stats cache invalidation failed for %s: %s", organizer_id, e)


stats_cache = DashboardStatsCache()


async def init_cache() -> None:
    await stats_cache.connect()


async def close_cache() -> None:
    await stats_cache.disconnect()


def get_stats_cache() -> DashboardStatsCache:
    return stats_cache
