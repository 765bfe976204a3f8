from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.deps import get_task_notification_scheduler
from app.schemas.task_notification import (
    CancelResponse,
    ReassignRequest,
    RescheduleRequest,
    ScheduleResponse,
    TaskNotificationOut,
)
from app.services.task_notification_scheduler import TaskNotificationScheduler

router = APIRouter(prefix="/tasks", tags=["Task Notifications"])


@router.post(
    "/{task_id}/notifications",
    response_model=ScheduleResponse,
    status_code=201,
)
async def schedule_task_notifications(
    task_id: UUID,
    scheduler: TaskNotificationScheduler = Depends(get_task_notification_scheduler),
) -> ScheduleResponse:
    """Plan reminders for a task from its stored assignee and due date."""
    created = await scheduler.schedule_for_stored_task(task_id)
    return ScheduleResponse(
        task_id=task_id,
        created=len(created),
        notifications=[TaskNotificationOut.model_validate(n) for n in created],
    )


@router.get("/{task_id}/notifications", response_model=List[TaskNotificationOut])
async def list_task_notifications(
    task_id: UUID,
    scheduler: TaskNotificationScheduler = Depends(get_task_notification_scheduler),
) -> List[TaskNotificationOut]:
    notifications = await scheduler.get_notifications_for_task(task_id)
    return [TaskNotificationOut.model_validate(n) for n in notifications]


@router.delete("/{task_id}/notifications", response_model=CancelResponse)
async def cancel_task_notifications(
    task_id: UUID,
    scheduler: TaskNotificationScheduler = Depends(get_task_notification_scheduler),
) -> CancelResponse:
    cancelled = await scheduler.cancel_for_task(task_id)
    return CancelResponse(task_id=task_id, cancelled=cancelled)


@router.put("/{task_id}/due-date", response_model=ScheduleResponse)
async def reschedule_task(
    task_id: UUID,
    body: RescheduleRequest,
    scheduler: TaskNotificationScheduler = Depends(get_task_notification_scheduler),
) -> ScheduleResponse:
    """Move a task's due date and rebuild its pending reminders."""
    created = await scheduler.reschedule_for_task(
        task_id, body.due_date, persist_due_date=True
    )
    return ScheduleResponse(
        task_id=task_id,
        created=len(created),
        notifications=[TaskNotificationOut.model_validate(n) for n in created],
    )


@router.post("/{task_id}/complete", response_model=CancelResponse)
async def complete_task(
    task_id: UUID,
    scheduler: TaskNotificationScheduler = Depends(get_task_notification_scheduler),
) -> CancelResponse:
    cancelled = await scheduler.complete_task(task_id)
    return CancelResponse(task_id=task_id, cancelled=cancelled)


@router.put("/{task_id}/assignee", response_model=ScheduleResponse)
async def reassign_task(
    task_id: UUID,
    body: ReassignRequest,
    scheduler: TaskNotificationScheduler = Depends(get_task_notification_scheduler),
) -> ScheduleResponse:
    """Assign the task to another user and re-plan reminders for them."""
    created = await scheduler.reassign_task(task_id, body.user_id)
    return ScheduleResponse(
        task_id=task_id,
        created=len(created),
        notifications=[TaskNotificationOut.model_validate(n) for n in created],
    )


@router.delete("/{task_id}", response_model=CancelResponse)
async def delete_task(
    task_id: UUID,
    scheduler: TaskNotificationScheduler = Depends(get_task_notification_scheduler),
) -> CancelResponse:
    """Soft-delete a task; its pending reminders are cancelled first."""
    cancelled = await scheduler.delete_task(task_id)
    return CancelResponse(task_id=task_id, cancelled=cancelled)
