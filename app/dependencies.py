import logging
from typing import Optional

from fastapi import Depends, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheService
from app.core.config import settings
from app.core.database import AsyncSessionLocal, get_db
from app.services.channels import (
    RedisRealtimeChannel,
    SendGridEmailChannel,
    TwilioSmsChannel,
)
from app.services.lead_follow_up_dispatcher import LeadFollowUpDispatcher
from app.services.task_notification_scheduler import TaskNotificationScheduler

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Redis client factory
# ---------------------------------------------------------------------------


async def get_redis_client() -> Optional[Redis]:
    """Return a connected async Redis client, or ``None`` if unreachable."""
    try:
        client = Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        await client.ping()
        return client
    except Exception:
        logger.warning(
            "Redis unavailable – real-time push and stats caching disabled"
        )
        return None


# ---------------------------------------------------------------------------
# Dispatcher factories (called once from the application lifespan)
# ---------------------------------------------------------------------------


def build_task_notification_scheduler(
    redis_client: Optional[Redis],
) -> TaskNotificationScheduler:
    return TaskNotificationScheduler(
        AsyncSessionLocal,
        email_channel=SendGridEmailChannel(),
        sms_channel=TwilioSmsChannel(),
        realtime_channel=RedisRealtimeChannel(redis_client),
        cache=CacheService(redis_client),
    )


def build_lead_follow_up_dispatcher() -> LeadFollowUpDispatcher:
    return LeadFollowUpDispatcher(
        AsyncSessionLocal,
        email_channel=SendGridEmailChannel(),
        sms_channel=TwilioSmsChannel(),
    )


# ---------------------------------------------------------------------------
# Request-scoped accessors
# ---------------------------------------------------------------------------


def get_task_notification_scheduler(request: Request) -> TaskNotificationScheduler:
    return request.app.state.task_notification_scheduler


def get_lead_follow_up_dispatcher(request: Request) -> LeadFollowUpDispatcher:
    return request.app.state.lead_follow_up_dispatcher


async def get_organization_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.organization_repository import OrganizationRepository

    return OrganizationRepository(db)
