from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update

from app.models.task import Task
from app.repositories.base import BaseRepository


class TaskRepository(BaseRepository):
    """Encapsulates queries against the ``tasks`` table.

    Soft-deleted tasks are invisible to every read.
    """

    async def get_by_id(self, task_id: UUID) -> Optional[Task]:
        """Return a single live task by primary key, or ``None``."""
        result = await self._db.execute(
            select(Task).where(Task.task_id == task_id, Task.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    async def update_due_date(self, task_id: UUID, due_date: datetime) -> None:
        await self._db.execute(
            update(Task).where(Task.task_id == task_id).values(due_date=due_date)
        )

    async def update_assignee(self, task_id: UUID, user_id: UUID) -> None:
        await self._db.execute(
            update(Task).where(Task.task_id == task_id).values(assigned_to_id=user_id)
        )

    async def mark_completed(self, task_id: UUID) -> None:
        await self._db.execute(
            update(Task).where(Task.task_id == task_id).values(is_completed=True)
        )

    async def soft_delete(self, task_id: UUID, deleted_at: datetime) -> None:
        await self._db.execute(
            update(Task)
            .where(Task.task_id == task_id, Task.deleted_at.is_(None))
            .values(deleted_at=deleted_at)
        )
