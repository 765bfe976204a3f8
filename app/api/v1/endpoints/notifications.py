from uuid import UUID

from fastapi import APIRouter, Depends, Request

from app.api.deps import get_organization_repo, get_task_notification_scheduler
from app.core.exceptions import OrganizationNotFoundError
from app.core.rate_limit import limiter
from app.repositories.organization_repository import OrganizationRepository
from app.schemas.task_notification import NotificationCycleSummary, NotificationStats
from app.services.task_notification_scheduler import TaskNotificationScheduler

router = APIRouter(tags=["Task Notifications"])


@router.get(
    "/organizations/{organization_id}/notifications/stats",
    response_model=NotificationStats,
)
async def get_notification_stats(
    organization_id: UUID,
    organization_repo: OrganizationRepository = Depends(get_organization_repo),
    scheduler: TaskNotificationScheduler = Depends(get_task_notification_scheduler),
) -> NotificationStats:
    if await organization_repo.get_by_id(organization_id) is None:
        raise OrganizationNotFoundError(f"Organization {organization_id} not found")
    return await scheduler.get_notification_stats(organization_id)


@router.post("/notifications/process", response_model=NotificationCycleSummary)
@limiter.limit("6/minute")
async def process_pending_notifications(
    request: Request,
    scheduler: TaskNotificationScheduler = Depends(get_task_notification_scheduler),
) -> NotificationCycleSummary:
    """Run one reminder cycle now.

    Returns ``skipped=true`` when the background cycle is already running.
    """
    return await scheduler.process_pending()
