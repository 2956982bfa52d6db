import json
import logging

import redis.asyncio as redis

from blog_api.config import settings

logger = logging.getLogger(__name__)

POSTS_LIST_PREFIX = "posts:list"
CATEGORIES_KEY = "categories:all"


class CacheManager:
    """
    Cache-aside manager backed by Redis.

    Every public method tolerates Redis being down or unconfigured: reads
    return None and writes are skipped, so a cache outage never fails a
    request.  Only list views are cached; post detail is always read from the
    database because its view counter and comments change on every hit.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected")
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, cache disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        if not self.enabled:
            return None
        try:
            data = await self._redis.get(key)
            return json.loads(data) if data is not None else None
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            return None

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        if not self.enabled:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching *pattern* using SCAN (avoids blocking KEYS)."""
        if not self.enabled:
            return
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
        except Exception as exc:
            logger.debug("Cache DELETE_PATTERN error for pattern=%r: %s", pattern, exc)

    # ------------------------------------------------------------------
    # Domain-level keys and invalidation
    # ------------------------------------------------------------------

    @staticmethod
    def posts_list_key(page: int, limit: int, category_id: str | None) -> str:
        return f"{POSTS_LIST_PREFIX}:{category_id or 'all'}:{page}:{limit}"

    async def invalidate_posts(self) -> None:
        """Drop every cached post page; pagination is stale after any post write."""
        await self.delete_pattern(f"{POSTS_LIST_PREFIX}:*")

    async def invalidate_categories(self) -> None:
        await self.delete_pattern(CATEGORIES_KEY)


# Module-level singleton shared across all request handlers.
cache = CacheManager()
