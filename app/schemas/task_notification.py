"""Task-reminder schemas (history, stats, dispatch summaries)."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import NotificationStatus, SuccessResponse


class TaskNotificationOut(BaseModel):
    """One row of a task's reminder history."""

    model_config = ConfigDict(from_attributes=True)

    notification_id: Optional[UUID] = None
    task_id: UUID
    user_id: Optional[UUID] = None  # cleared when the user is deleted
    organization_id: UUID
    notification_type: str  # "24h|12h|6h|3h|1h"
    hours_before_due: int
    subject: str
    message: str
    scheduled_for: datetime
    status: NotificationStatus
    is_email_sent: bool = False
    is_sms_sent: bool = False
    is_realtime_sent: bool = False
    failure_reason: Optional[str] = None
    sent_at: Optional[datetime] = None


class ScheduleResponse(SuccessResponse):
    task_id: UUID
    created: int
    notifications: List[TaskNotificationOut]


class CancelResponse(SuccessResponse):
    task_id: UUID
    cancelled: int


class RescheduleRequest(BaseModel):
    """Body for PUT /api/v1/tasks/{task_id}/due-date."""

    due_date: datetime


class ReassignRequest(BaseModel):
    """Body for PUT /api/v1/tasks/{task_id}/assignee."""

    user_id: UUID


class NotificationStats(BaseModel):
    total: int = 0
    pending: int = 0
    sent: int = 0
    failed: int = 0
    cancelled: int = 0


class NotificationCycleSummary(BaseModel):
    """Result of one ``process_pending`` cycle.

    ``skipped`` is set when the cycle did not run because another one was
    still in progress.
    """

    processed: int = Field(0, ge=0)
    sent: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)
    skipped: bool = False
