import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheService, stats_cache_key
from app.core.config import settings
from app.core.constants import TASK_REMINDER_EVENT
from app.core.exceptions import (
    NotificationDataError,
    TaskNotFoundError,
    UserNotFoundError,
)
from app.models.task_notification import TaskNotification
from app.repositories.task_notification_repository import TaskNotificationRepository
from app.repositories.task_repository import TaskRepository
from app.repositories.user_repository import UserRepository
from app.schemas.channel import ChannelResult
from app.schemas.common import NotificationChannel, NotificationStatus
from app.schemas.task_notification import NotificationCycleSummary, NotificationStats
from app.services.channels import (
    RedisRealtimeChannel,
    SendGridEmailChannel,
    TwilioCredentials,
    TwilioSmsChannel,
)
from app.services.periodic import PeriodicDispatcher

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def build_notification_plan(
    *,
    task_id: UUID,
    user_id: UUID,
    organization_id: UUID,
    due_date: datetime,
    offsets_hours: Iterable[int],
    now: datetime,
) -> List[Dict[str, Any]]:
    """Return one pending-row mapping per lead time that is not in the past.

    ``scheduled_for`` is ``due_date - offset``; offsets whose reminder time
    is strictly before *now* are dropped, so a task due sooner than the
    smallest offset gets no reminders at all.
    """
    due_date = _as_utc(due_date)
    now = _as_utc(now)
    rows: List[Dict[str, Any]] = []
    for hours in offsets_hours:
        scheduled_for = due_date - timedelta(hours=hours)
        if scheduled_for < now:
            continue
        unit = "Hour" if hours == 1 else "Hours"
        rows.append(
            {
                "task_id": task_id,
                "user_id": user_id,
                "organization_id": organization_id,
                "notification_type": f"{hours}h",
                "hours_before_due": hours,
                "subject": f"Task Due in {hours} {unit}",
                "message": (
                    f"Your task is due in {hours} {unit.lower()}. "
                    "Please complete it on time."
                ),
                "scheduled_for": scheduled_for,
                "status": NotificationStatus.pending.value,
                "is_email_sent": False,
                "is_sms_sent": False,
                "is_realtime_sent": False,
            }
        )
    return rows


def resolve_notification_status(
    results: Dict[NotificationChannel, ChannelResult],
) -> Tuple[NotificationStatus, Optional[str]]:
    """Decide the terminal status of a reminder from its channel results.

    Any failed email or SMS attempt fails the row.  Real-time push is
    fire-and-forget: its failure alone never fails a row, but a row where
    no channel delivered anything is failed.
    """
    failures = [
        f"{channel.value}: {result.reason}"
        for channel, result in results.items()
        if result.is_failed and channel is not NotificationChannel.realtime
    ]
    if failures:
        return NotificationStatus.failed, "; ".join(failures)
    if any(result.is_sent for result in results.values()):
        return NotificationStatus.sent, None
    reasons = "; ".join(
        f"{channel.value}: {result.reason}"
        for channel, result in results.items()
        if result.reason
    )
    return NotificationStatus.failed, f"No delivery channel succeeded ({reasons})"


class DueReminder(BaseModel):
    """Detached snapshot of one due reminder and everything needed to send it."""

    notification_id: UUID
    task_id: UUID
    task_title: str
    due_date: Optional[datetime] = None
    hours_before_due: int
    subject: str
    message: str
    user_id: UUID
    username: str
    user_email: Optional[str] = None
    user_phone: Optional[str] = None
    organization_id: UUID
    organization_name: str
    twilio: Optional[TwilioCredentials] = None

    @classmethod
    def from_row(cls, notification, task, user, organization) -> "DueReminder":
        return cls(
            notification_id=notification.notification_id,
            task_id=task.task_id,
            task_title=task.title,
            due_date=task.due_date,
            hours_before_due=notification.hours_before_due,
            subject=notification.subject,
            message=notification.message,
            user_id=user.user_id,
            username=user.username,
            user_email=user.email or None,
            user_phone=user.phone or None,
            organization_id=organization.organization_id,
            organization_name=organization.name,
            twilio=TwilioCredentials.from_organization(organization),
        )

    def realtime_payload(self) -> Dict[str, Any]:
        return {
            "type": TASK_REMINDER_EVENT,
            "taskId": str(self.task_id),
            "taskTitle": self.task_title,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "hoursBeforeDue": self.hours_before_due,
            "userId": str(self.user_id),
            "organizationId": str(self.organization_id),
            "subject": self.subject,
            "message": self.message,
        }


class TaskNotificationScheduler(PeriodicDispatcher):
    """Plans and delivers task due-date reminders.

    Every public operation opens its own session from *session_factory*
    and commits before returning.  ``process_pending`` commits after each
    reminder, so a crash mid-cycle leaves earlier rows marked and at most
    the in-flight row is sent again on the next cycle.
    """

    name = "task-notification-scheduler"

    def __init__(
        self,
        session_factory: Callable[..., AsyncSession],
        *,
        email_channel: SendGridEmailChannel,
        sms_channel: TwilioSmsChannel,
        realtime_channel: RedisRealtimeChannel,
        cache: Optional[CacheService] = None,
        offsets_hours: Optional[Iterable[int]] = None,
        interval_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(
            interval_seconds or settings.TASK_NOTIFICATION_INTERVAL_SECONDS
        )
        offsets = list(
            offsets_hours
            if offsets_hours is not None
            else settings.TASK_NOTIFICATION_OFFSETS_HOURS
        )
        if any(hours <= 0 for hours in offsets):
            raise ValueError("Notification offsets must be positive hours")
        self._offsets_hours: List[int] = sorted(set(offsets), reverse=True)
        self._session_factory = session_factory
        self._email = email_channel
        self._sms = sms_channel
        self._realtime = realtime_channel
        self._cache = cache or CacheService()
        self._clock = clock

    @property
    def offsets_hours(self) -> List[int]:
        return list(self._offsets_hours)

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    async def _create_for_task(
        self,
        repo: TaskNotificationRepository,
        task_id: UUID,
        assigned_user_id: UUID,
        due_date: datetime,
        organization_id: UUID,
    ) -> List[TaskNotification]:
        plan = build_notification_plan(
            task_id=task_id,
            user_id=assigned_user_id,
            organization_id=organization_id,
            due_date=due_date,
            offsets_hours=self._offsets_hours,
            now=self._clock(),
        )
        existing = await repo.get_pending_offsets(task_id)
        plan = [row for row in plan if row["hours_before_due"] not in existing]
        if not plan:
            logger.info(
                "No future notifications created for task %s (due %s)",
                task_id,
                _as_utc(due_date).isoformat(),
            )
            return []
        created = await repo.create_many(plan)
        logger.info("Created %d notification(s) for task %s", len(created), task_id)
        return created

    async def schedule_for_task(
        self,
        task_id: UUID,
        assigned_user_id: UUID,
        due_date: datetime,
        organization_id: UUID,
    ) -> List[TaskNotification]:
        """Create one pending reminder per configured lead time still ahead."""
        async with self._session_factory() as session:
            repo = TaskNotificationRepository(session)
            created = await self._create_for_task(
                repo, task_id, assigned_user_id, due_date, organization_id
            )
            await session.commit()
        if created:
            await self._cache.invalidate_stats(organization_id)
        return created

    async def schedule_for_stored_task(self, task_id: UUID) -> List[TaskNotification]:
        """Schedule reminders using the assignee and due date stored on the task."""
        async with self._session_factory() as session:
            task = await TaskRepository(session).get_by_id(task_id)
            if task is None:
                raise TaskNotFoundError(f"Task {task_id} not found")
            if task.assigned_to_id is None or task.due_date is None:
                raise NotificationDataError(
                    f"Task {task_id} needs an assignee and a due date to be scheduled"
                )
            if task.is_completed:
                raise NotificationDataError(f"Task {task_id} is already completed")
            created = await self._create_for_task(
                TaskNotificationRepository(session),
                task.task_id,
                task.assigned_to_id,
                task.due_date,
                task.organization_id,
            )
            await session.commit()
        if created:
            await self._cache.invalidate_stats(task.organization_id)
        return created

    async def cancel_for_task(self, task_id: UUID) -> int:
        """Cancel every pending reminder of *task_id*; return how many."""
        async with self._session_factory() as session:
            cancelled = await TaskNotificationRepository(session).cancel_pending_for_task(
                task_id
            )
            task = await TaskRepository(session).get_by_id(task_id)
            await session.commit()
        logger.info("Cancelled %d notification(s) for task %s", cancelled, task_id)
        if cancelled and task is not None:
            await self._cache.invalidate_stats(task.organization_id)
        return cancelled

    async def reschedule_for_task(
        self,
        task_id: UUID,
        new_due_date: datetime,
        *,
        persist_due_date: bool = False,
    ) -> List[TaskNotification]:
        """Cancel pending reminders, then plan again from *new_due_date*.

        Repeated calls with the same due date produce the same pending set;
        the earlier rows stay behind as cancelled history.  Nothing is
        recreated for a missing, unassigned or completed task.  When the
        new due date is to be stored, a missing task raises
        ``TaskNotFoundError`` before anything is touched.
        """
        logger.info(
            "Rescheduling notifications for task %s, new due date %s",
            task_id,
            _as_utc(new_due_date).isoformat(),
        )
        async with self._session_factory() as session:
            notification_repo = TaskNotificationRepository(session)
            task_repo = TaskRepository(session)
            task = await task_repo.get_by_id(task_id)
            if task is None and persist_due_date:
                raise TaskNotFoundError(f"Task {task_id} not found")
            await notification_repo.cancel_pending_for_task(task_id)
            if persist_due_date:
                await task_repo.update_due_date(task_id, new_due_date)
            created: List[TaskNotification] = []
            if task is not None and task.assigned_to_id and not task.is_completed:
                created = await self._create_for_task(
                    notification_repo,
                    task_id,
                    task.assigned_to_id,
                    new_due_date,
                    task.organization_id,
                )
            await session.commit()
        if task is not None:
            await self._cache.invalidate_stats(task.organization_id)
        return created

    async def reassign_task(
        self, task_id: UUID, new_user_id: UUID
    ) -> List[TaskNotification]:
        """Hand a task to another user and move its pending reminders along.

        The old assignee's pending rows are cancelled and a fresh set is
        planned for *new_user_id* from the stored due date.  The new user
        must belong to the task's organization.
        """
        async with self._session_factory() as session:
            task_repo = TaskRepository(session)
            task = await task_repo.get_by_id(task_id)
            if task is None:
                raise TaskNotFoundError(f"Task {task_id} not found")
            user = await UserRepository(session).get_by_id(new_user_id)
            if user is None or user.organization_id != task.organization_id:
                raise UserNotFoundError(
                    f"User {new_user_id} not found in organization {task.organization_id}"
                )
            notification_repo = TaskNotificationRepository(session)
            cancelled = await notification_repo.cancel_pending_for_task(task_id)
            await task_repo.update_assignee(task_id, new_user_id)
            created: List[TaskNotification] = []
            if task.due_date is not None and not task.is_completed:
                created = await self._create_for_task(
                    notification_repo,
                    task_id,
                    new_user_id,
                    task.due_date,
                    task.organization_id,
                )
            await session.commit()
        logger.info(
            "Task %s reassigned to user %s; cancelled %d, created %d notification(s)",
            task_id,
            new_user_id,
            cancelled,
            len(created),
        )
        await self._cache.invalidate_stats(task.organization_id)
        return created

    async def complete_task(self, task_id: UUID) -> int:
        """Mark a task completed and cancel its pending reminders."""
        async with self._session_factory() as session:
            task_repo = TaskRepository(session)
            task = await task_repo.get_by_id(task_id)
            if task is None:
                raise TaskNotFoundError(f"Task {task_id} not found")
            await task_repo.mark_completed(task_id)
            cancelled = await TaskNotificationRepository(
                session
            ).cancel_pending_for_task(task_id)
            await session.commit()
        logger.info(
            "Task %s completed; cancelled %d pending notification(s)",
            task_id,
            cancelled,
        )
        await self._cache.invalidate_stats(task.organization_id)
        return cancelled

    async def delete_task(self, task_id: UUID) -> int:
        """Soft-delete a task after cancelling its pending reminders.

        Reminder rows are history and outlive the task; only the task row
        is flagged.
        """
        async with self._session_factory() as session:
            task_repo = TaskRepository(session)
            task = await task_repo.get_by_id(task_id)
            if task is None:
                raise TaskNotFoundError(f"Task {task_id} not found")
            cancelled = await TaskNotificationRepository(
                session
            ).cancel_pending_for_task(task_id)
            await task_repo.soft_delete(task_id, self._clock())
            await session.commit()
        logger.info(
            "Task %s deleted; cancelled %d pending notification(s)",
            task_id,
            cancelled,
        )
        await self._cache.invalidate_stats(task.organization_id)
        return cancelled

    # ------------------------------------------------------------------
    # History / stats
    # ------------------------------------------------------------------

    async def get_notifications_for_task(self, task_id: UUID) -> List[TaskNotification]:
        async with self._session_factory() as session:
            return await TaskNotificationRepository(session).list_for_task(task_id)

    async def get_notification_stats(self, organization_id: UUID) -> NotificationStats:
        cached = await self._cache.get_json(stats_cache_key(organization_id))
        if cached is not None:
            return NotificationStats(**cached)

        async with self._session_factory() as session:
            counts = await TaskNotificationRepository(session).count_by_status(
                organization_id
            )
        stats = NotificationStats(
            total=sum(counts.values()),
            **{
                status.value: counts.get(status.value, 0)
                for status in NotificationStatus
            },
        )
        await self._cache.set_json(
            stats_cache_key(organization_id),
            stats.model_dump(),
            ttl=settings.REDIS_CACHE_TTL,
        )
        return stats

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def _attempt(
        self,
        reminder: DueReminder,
        channel: NotificationChannel,
        send: Callable[[], Awaitable[Any]],
    ) -> ChannelResult:
        try:
            await send()
        except Exception as exc:
            logger.error(
                "Failed to send %s notification %s: %s",
                channel.value,
                reminder.notification_id,
                exc,
                exc_info=True,
            )
            return ChannelResult.failed(str(exc) or type(exc).__name__)
        return ChannelResult.sent()

    async def _deliver(
        self, reminder: DueReminder
    ) -> Dict[NotificationChannel, ChannelResult]:
        """Try every channel independently; real-time push goes first.

        Nothing is written to the database here, so every channel gets its
        attempt before the row's outcome is recorded.
        """
        results: Dict[NotificationChannel, ChannelResult] = {}

        if self._realtime.is_configured:
            results[NotificationChannel.realtime] = await self._attempt(
                reminder,
                NotificationChannel.realtime,
                lambda: self._realtime.publish(
                    user_id=reminder.user_id,
                    organization_id=reminder.organization_id,
                    event_type=TASK_REMINDER_EVENT,
                    payload=reminder.realtime_payload(),
                ),
            )
        else:
            results[NotificationChannel.realtime] = ChannelResult.skipped(
                "real-time bus not configured"
            )

        if not reminder.user_email:
            results[NotificationChannel.email] = ChannelResult.skipped(
                "user has no email"
            )
        elif not self._email.is_configured:
            results[NotificationChannel.email] = ChannelResult.skipped(
                "email channel not configured"
            )
        else:
            results[NotificationChannel.email] = await self._attempt(
                reminder,
                NotificationChannel.email,
                lambda: self._email.send(
                    to=reminder.user_email,
                    subject=reminder.subject,
                    text=f"{reminder.task_title}\n\n{reminder.message}",
                    from_name=reminder.organization_name or None,
                ),
            )

        if not reminder.user_phone:
            results[NotificationChannel.sms] = ChannelResult.skipped(
                "user has no phone"
            )
        elif reminder.twilio is None:
            results[NotificationChannel.sms] = ChannelResult.skipped(
                "SMS not configured for organization"
            )
        else:
            results[NotificationChannel.sms] = await self._attempt(
                reminder,
                NotificationChannel.sms,
                lambda: self._sms.send(
                    reminder.twilio,
                    to=reminder.user_phone,
                    body=f"{reminder.subject}: {reminder.task_title}. {reminder.message}",
                ),
            )

        return results

    async def _process_reminder(
        self, repo: TaskNotificationRepository, reminder: DueReminder
    ) -> NotificationStatus:
        results = await self._deliver(reminder)
        status, reason = resolve_notification_status(results)
        delivered = [channel for channel, result in results.items() if result.is_sent]
        if status is NotificationStatus.sent:
            await repo.mark_sent(reminder.notification_id, self._clock(), delivered)
            logger.info(
                "Notification sent for task %s to user %s",
                reminder.task_id,
                reminder.username,
            )
        else:
            await repo.mark_failed(reminder.notification_id, reason, delivered)
            logger.warning(
                "Notification %s failed: %s", reminder.notification_id, reason
            )
        return status

    async def _record_failure(
        self, repo: TaskNotificationRepository, notification_id: UUID, reason: str
    ) -> None:
        """Mark one row failed in a fresh transaction; errors are logged, not raised.

        A row whose failure cannot be written stays pending and is picked
        up again on the next cycle.
        """
        try:
            await repo.rollback()
            await repo.mark_failed(notification_id, reason)
            await repo.commit()
        except Exception:
            logger.error(
                "Could not record failure for notification %s; it stays pending",
                notification_id,
                exc_info=True,
            )
            try:
                await repo.rollback()
            except Exception:
                logger.error(
                    "Rollback failed after notification %s",
                    notification_id,
                    exc_info=True,
                )

    async def process_pending(self) -> NotificationCycleSummary:
        """Deliver every due reminder once; skipped while a cycle is running."""
        summary = await self._guarded(self._process_pending_cycle)
        if summary is None:
            return NotificationCycleSummary(skipped=True)
        return summary

    async def run_cycle(self) -> NotificationCycleSummary:
        summary = await self.process_pending()
        if summary.processed:
            logger.info(
                "Task notification cycle complete: %d processed, %d sent, %d failed",
                summary.processed,
                summary.sent,
                summary.failed,
            )
        return summary

    async def _process_pending_cycle(self) -> NotificationCycleSummary:
        now = self._clock()
        summary = NotificationCycleSummary()
        touched_organizations = set()

        async with self._session_factory() as session:
            repo = TaskNotificationRepository(session)
            rows = await repo.get_due(now)
            logger.info("Found %d pending notification(s) to process", len(rows))

            # Snapshot first: a rollback below expires every loaded instance.
            work: List[Tuple[UUID, UUID, Optional[DueReminder], Optional[str]]] = []
            for notification, task, user, organization in rows:
                try:
                    reminder = DueReminder.from_row(notification, task, user, organization)
                    work.append(
                        (notification.notification_id, notification.organization_id, reminder, None)
                    )
                except Exception as exc:
                    logger.error(
                        "Notification %s has incomplete data",
                        notification.notification_id,
                        exc_info=True,
                    )
                    work.append(
                        (
                            notification.notification_id,
                            notification.organization_id,
                            None,
                            f"Invalid notification data: {exc}",
                        )
                    )

            for notification_id, organization_id, reminder, data_error in work:
                summary.processed += 1
                touched_organizations.add(organization_id)
                if reminder is None:
                    await self._record_failure(repo, notification_id, data_error)
                    summary.failed += 1
                    continue
                try:
                    status = await self._process_reminder(repo, reminder)
                    await repo.commit()
                except Exception as exc:
                    logger.error(
                        "Failed to process notification %s",
                        notification_id,
                        exc_info=True,
                    )
                    await self._record_failure(
                        repo, notification_id, str(exc) or "Unknown error"
                    )
                    status = NotificationStatus.failed
                if status is NotificationStatus.sent:
                    summary.sent += 1
                else:
                    summary.failed += 1

        for organization_id in touched_organizations:
            await self._cache.invalidate_stats(organization_id)
        return summary
