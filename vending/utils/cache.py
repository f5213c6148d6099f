import json
import logging
from typing import Optional, Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from vending.config import Settings

logger = logging.getLogger(__name__)


def build_redis_client(settings: Settings) -> Optional[redis.Redis]:
    """Create the Redis client, or None when caching is switched off."""
    if not settings.REDIS_URL:
        return None
    return redis.from_url(settings.REDIS_URL, decode_responses=True)


class CacheService:
    """
    Redis cache service.

    This service provides methods for:
    - Setting cache with TTL
    - Getting cached values
    - Invalidating cache

    Redis failures never propagate: a miss is reported instead and the
    caller falls back to the database. Without a client every call is a
    miss.
    """

    def __init__(self, client: Optional[redis.Redis], ttl: int = 300):
        self.client = client
        self.ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "CacheService":
        return cls(build_redis_client(settings), settings.CACHE_TTL)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _make_key(self, prefix: str, key: str) -> str:
        """Create a namespaced cache key."""
        return f"{prefix}:{key}"

    async def get(self, prefix: str, key: str) -> Optional[Any]:
        """
        Get a value from cache.

        Args:
            prefix: Cache key prefix (e.g., 'token')
            key: Unique identifier

        Returns:
            Cached value or None if not found
        """
        if not self.enabled:
            return None
        cache_key = self._make_key(prefix, key)
        try:
            value = await self.client.get(cache_key)
            if value:
                return json.loads(value)
            return None
        except (RedisError, json.JSONDecodeError) as e:
            logger.warning(f"Cache read failed for {prefix}: {e}")
            return None

    async def set(self, prefix: str, key: str, value: Any, ttl: int = None) -> bool:
        """
        Set a value in cache with TTL.

        Args:
            prefix: Cache key prefix
            key: Unique identifier
            value: Value to cache (will be JSON serialized)
            ttl: Time to live in seconds (optional, uses default if not provided)

        Returns:
            True if successful, False otherwise
        """
        if not self.enabled:
            return False
        cache_key = self._make_key(prefix, key)
        ttl = ttl or self.ttl
        try:
            serialized = json.dumps(value, default=str)
            await self.client.setex(cache_key, ttl, serialized)
            return True
        except (RedisError, TypeError) as e:
            logger.warning(f"Cache write failed for {prefix}: {e}")
            return False

    async def delete(self, prefix: str, key: str) -> bool:
        """Delete a value from cache."""
        if not self.enabled:
            return False
        cache_key = self._make_key(prefix, key)
        try:
            await self.client.delete(cache_key)
            return True
        except RedisError as e:
            logger.warning(f"Cache delete failed for {prefix}: {e}")
            return False

    async def ping(self) -> bool:
        if not self.enabled:
            return False
        return bool(await self.client.ping())

    async def close(self) -> None:
        if self.enabled:
            await self.client.aclose()
