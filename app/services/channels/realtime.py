import json
from typing import Any, Dict, Optional
from uuid import UUID

from redis.asyncio import Redis

from app.core.constants import REALTIME_CHANNEL_PREFIX
from app.core.exceptions import ChannelNotConfiguredError


def realtime_channel_name(organization_id: UUID, user_id: UUID) -> str:
    """Pub/sub channel a user's websocket gateway subscribes to."""
    return f"{REALTIME_CHANNEL_PREFIX}:{organization_id}:{user_id}"


class RedisRealtimeChannel:
    """Fire-and-forget push to connected clients over Redis pub/sub.

    Publishing succeeds even when nobody is subscribed; callers log
    failures and never treat them as fatal.
    """

    def __init__(self, redis_client: Optional[Redis] = None) -> None:
        self._redis: Optional[Redis] = redis_client

    @property
    def is_configured(self) -> bool:
        return self._redis is not None

    async def publish(
        self,
        *,
        user_id: UUID,
        organization_id: UUID,
        event_type: str,
        payload: Dict[str, Any],
    ) -> int:
        """Publish *payload* and return the number of receiving subscribers."""
        if self._redis is None:
            raise ChannelNotConfiguredError("Real-time bus not configured")
        message = json.dumps({"type": event_type, "data": payload}, default=str)
        return await self._redis.publish(
            realtime_channel_name(organization_id, user_id), message
        )
