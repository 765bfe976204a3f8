"""Pydantic schemas package – re-exports for convenience."""

# Common enums
from app.schemas.common import (
    NotificationStatus as NotificationStatus,
    NotificationChannel as NotificationChannel,
    ChannelOutcome as ChannelOutcome,
    SuccessResponse as SuccessResponse,
)

# Channel results
from app.schemas.channel import ChannelResult as ChannelResult

# Task reminder schemas
from app.schemas.task_notification import (
    TaskNotificationOut as TaskNotificationOut,
    ScheduleResponse as ScheduleResponse,
    CancelResponse as CancelResponse,
    RescheduleRequest as RescheduleRequest,
    ReassignRequest as ReassignRequest,
    NotificationStats as NotificationStats,
    NotificationCycleSummary as NotificationCycleSummary,
)

# Lead follow-up schemas
from app.schemas.lead import (
    EnableFollowUpRequest as EnableFollowUpRequest,
    FollowUpScheduleResponse as FollowUpScheduleResponse,
    LeadFollowUpOutcome as LeadFollowUpOutcome,
    FollowUpCycleSummary as FollowUpCycleSummary,
)
