from datetime import datetime
from typing import Any, Dict, Iterable, List, Set
from uuid import UUID

from sqlalchemy import select, update, func, and_

from app.core.constants import TERMINAL_NOTIFICATION_STATUSES
from app.models.organization import Organization
from app.models.task import Task
from app.models.task_notification import TaskNotification
from app.models.user import User
from app.repositories.base import BaseRepository
from app.schemas.common import NotificationChannel, NotificationStatus

# Channel → boolean delivery flag on the notification row
_CHANNEL_FLAGS: Dict[NotificationChannel, str] = {
    NotificationChannel.realtime: "is_realtime_sent",
    NotificationChannel.email: "is_email_sent",
    NotificationChannel.sms: "is_sms_sent",
}


class TaskNotificationRepository(BaseRepository):
    """Encapsulates every query that touches the ``task_notifications`` table.

    Status updates are single-row statements scoped by primary key and
    never touch a row already in a terminal status, so history is never
    overwritten.
    """

    async def create_many(
        self, rows: List[Dict[str, Any]]
    ) -> List[TaskNotification]:
        """Insert one pending notification per mapping in *rows*."""
        notifications = [TaskNotification(**row) for row in rows]
        self._db.add_all(notifications)
        await self._db.flush()
        return notifications

    async def get_pending_offsets(self, task_id: UUID) -> Set[int]:
        """Return the lead times (hours) that already have a pending row."""
        result = await self._db.execute(
            select(TaskNotification.hours_before_due).where(
                TaskNotification.task_id == task_id,
                TaskNotification.status == NotificationStatus.pending.value,
            )
        )
        return set(result.scalars().all())

    async def get_due(self, now: datetime) -> List[Any]:
        """Return ``(notification, task, user, organization)`` rows due at *now*.

        Only pending reminders of tasks that are neither completed nor
        deleted qualify.  No ordering is applied.
        """
        query = (
            select(TaskNotification, Task, User, Organization)
            .join(Task, TaskNotification.task_id == Task.task_id)
            .join(User, TaskNotification.user_id == User.user_id)
            .join(
                Organization,
                TaskNotification.organization_id == Organization.organization_id,
            )
            .where(
                and_(
                    TaskNotification.status == NotificationStatus.pending.value,
                    TaskNotification.scheduled_for <= now,
                    Task.is_completed.is_(False),
                    Task.deleted_at.is_(None),
                )
            )
        )
        result = await self._db.execute(query)
        return list(result.all())

    async def _finish(
        self,
        notification_id: UUID,
        delivered: Iterable[NotificationChannel],
        **values: Any,
    ) -> int:
        """Write a terminal status plus the delivery flags; ``0`` if already terminal."""
        values.update({_CHANNEL_FLAGS[channel]: True for channel in delivered})
        result = await self._db.execute(
            update(TaskNotification)
            .where(
                TaskNotification.notification_id == notification_id,
                TaskNotification.status.notin_(sorted(TERMINAL_NOTIFICATION_STATUSES)),
            )
            .values(**values)
        )
        return result.rowcount or 0

    async def mark_sent(
        self,
        notification_id: UUID,
        sent_at: datetime,
        delivered: Iterable[NotificationChannel] = (),
    ) -> int:
        return await self._finish(
            notification_id,
            delivered,
            status=NotificationStatus.sent.value,
            sent_at=sent_at,
        )

    async def mark_failed(
        self,
        notification_id: UUID,
        reason: str,
        delivered: Iterable[NotificationChannel] = (),
    ) -> int:
        return await self._finish(
            notification_id,
            delivered,
            status=NotificationStatus.failed.value,
            failure_reason=reason,
        )

    async def cancel_pending_for_task(self, task_id: UUID) -> int:
        """Flip every pending row of *task_id* to cancelled; return the count."""
        result = await self._db.execute(
            update(TaskNotification)
            .where(
                TaskNotification.task_id == task_id,
                TaskNotification.status == NotificationStatus.pending.value,
            )
            .values(status=NotificationStatus.cancelled.value)
        )
        return result.rowcount or 0

    async def list_for_task(self, task_id: UUID) -> List[TaskNotification]:
        """Return the full notification history of a task, oldest schedule first."""
        result = await self._db.execute(
            select(TaskNotification)
            .where(TaskNotification.task_id == task_id)
            .order_by(TaskNotification.scheduled_for.asc())
        )
        return list(result.scalars().all())

    async def count_by_status(self, organization_id: UUID) -> Dict[str, int]:
        """Return ``{status: count}`` for one organization."""
        result = await self._db.execute(
            select(TaskNotification.status, func.count(TaskNotification.notification_id))
            .where(TaskNotification.organization_id == organization_id)
            .group_by(TaskNotification.status)
        )
        return {status: count for status, count in result.all()}
