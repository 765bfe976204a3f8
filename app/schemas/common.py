from enum import Enum
from pydantic import BaseModel


class NotificationStatus(str, Enum):
    pending = "pending"
    sent = "sent"
    failed = "failed"
    cancelled = "cancelled"


class NotificationChannel(str, Enum):
    realtime = "realtime"
    email = "email"
    sms = "sms"


class ChannelOutcome(str, Enum):
    sent = "sent"
    failed = "failed"
    skipped = "skipped"


class SuccessResponse(BaseModel):
    """Generic success response base."""

    success: bool = True
