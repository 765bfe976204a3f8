import json
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from redis.asyncio import Redis

from app.core.constants import STATS_CACHE_PREFIX

logger = logging.getLogger(__name__)


def stats_cache_key(organization_id: UUID) -> str:
    """Redis key holding the cached notification stats of an organization."""
    return f"{STATS_CACHE_PREFIX}:{organization_id}"


class CacheService:
    """Best-effort JSON cache on top of an async Redis client.

    If *redis_client* is ``None`` (Redis unavailable), reads miss and
    writes are dropped, so callers never need to check for ``None``.
    """

    def __init__(self, redis_client: Optional[Redis] = None) -> None:
        self._redis: Optional[Redis] = redis_client

    async def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the decoded JSON value stored at *key*, or ``None``."""
        if self._redis is None:
            return None
        try:
            raw = await self._redis.get(key)
        except Exception:
            logger.warning("Redis GET failed for key %s", key)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Invalid JSON in cache key %s", key)
            return None

    async def set_json(
        self, key: str, data: Dict[str, Any], ttl: int | None = None
    ) -> None:
        """Serialise *data* to JSON and store it, optionally with a TTL."""
        if self._redis is None:
            return
        try:
            payload = json.dumps(data, default=str)
        except (TypeError, ValueError):
            logger.warning("Failed to serialise data for cache key %s", key)
            return
        try:
            if ttl:
                await self._redis.setex(key, ttl, payload)
            else:
                await self._redis.set(key, payload)
        except Exception:
            logger.warning("Redis SET failed for key %s", key)

    async def delete(self, key: str) -> None:
        """Remove *key* from the cache (best-effort)."""
        if self._redis is None:
            return
        try:
            await self._redis.delete(key)
        except Exception:
            logger.warning("Redis DELETE failed for key %s", key)

    async def invalidate_stats(self, organization_id: UUID) -> None:
        await self.delete(stats_cache_key(organization_id))

    @property
    def is_available(self) -> bool:
        """Return ``True`` if a Redis client is configured."""
        return self._redis is not None
