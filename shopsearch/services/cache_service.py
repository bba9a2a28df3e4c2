"""Redis cache for keyword ranking responses.

A process-wide ``CacheService`` wraps ``redis.asyncio`` with TTL writes and
pattern invalidation. Redis errors are logged and behave like cache misses,
so an unavailable Redis only costs a database round-trip.
"""

from typing import Optional

import structlog
from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from shopsearch.config import settings

logger = structlog.get_logger(__name__)

KEYWORD_CACHE_PREFIXES = ("trending", "popular", "report")


class CacheService:
    """Async Redis cache with graceful degradation.

    Args:
        redis_url: Redis connection URL (e.g. "redis://localhost:6379/0")
    """

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self._redis: Optional[Redis] = None
        self.logger = logger.bind(service="cache_service")

    async def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            self.logger.info("redis_connection_created", url=self.redis_url)
        return self._redis

    async def get(self, key: str) -> Optional[str]:
        """Cached value, or None on a miss or Redis error."""
        try:
            value = await (await self._get_redis()).get(key)
        except RedisError as e:
            self.logger.error("cache_get_failed", key=key, error=str(e))
            return None

        self.logger.debug("cache_hit" if value else "cache_miss", key=key)
        return value

    async def set(self, key: str, value: str, ttl: int = settings.KEYWORD_CACHE_TTL_SECONDS) -> bool:
        """Store a value with a TTL in seconds; False on Redis error."""
        try:
            await (await self._get_redis()).set(key, value, ex=ttl)
        except RedisError as e:
            self.logger.error("cache_set_failed", key=key, error=str(e))
            return False

        self.logger.debug("cache_set", key=key, ttl=ttl)
        return True

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern.

        Returns:
            Number of keys deleted, 0 on error
        """
        try:
            redis = await self._get_redis()
            keys = [key async for key in redis.scan_iter(match=pattern, count=100)]
            deleted = await redis.delete(*keys) if keys else 0
        except RedisError as e:
            self.logger.error("cache_pattern_delete_failed", pattern=pattern, error=str(e))
            return 0

        self.logger.info("cache_pattern_delete", pattern=pattern, keys_deleted=deleted)
        return deleted

    async def health_check(self) -> bool:
        """True if Redis answers a ping."""
        try:
            await (await self._get_redis()).ping()
            return True
        except Exception as e:
            self.logger.error("redis_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close the Redis connection; called on application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("redis_connection_closed")


# Global cache instance
_cache_instance: Optional[CacheService] = None


def get_cache_service() -> CacheService:
    """Get or create the process-wide cache service."""
    global _cache_instance

    if _cache_instance is None:
        _cache_instance = CacheService(settings.REDIS_URL)
        logger.info("cache_service_initialized", redis_url=settings.REDIS_URL)

    return _cache_instance


async def get_cache() -> CacheService:
    """FastAPI dependency for the cache service."""
    return get_cache_service()


def cache_key_for_keywords(kind: str, limit: int) -> str:
    """Cache key for a keyword ranking, e.g. ``trending:l10``."""
    return f"{kind}:l{limit}"


async def invalidate_keyword_cache(cache: Optional[CacheService] = None) -> int:
    """Drop cached trending and popular rankings.

    Called after maintenance jobs rewrite keyword scores.

    Returns:
        Number of cache keys deleted
    """
    cache = cache or get_cache_service()

    total_deleted = 0
    for prefix in KEYWORD_CACHE_PREFIXES:
        total_deleted += await cache.delete_pattern(f"{prefix}:*")

    logger.info("keyword_cache_invalidated", keys_deleted=total_deleted)
    return total_deleted
