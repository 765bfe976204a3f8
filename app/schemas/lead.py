"""Lead automatic follow-up schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.constants import MIN_FOLLOW_UP_INTERVAL_DAYS
from app.schemas.channel import ChannelResult


class EnableFollowUpRequest(BaseModel):
    """Body for POST /api/v1/leads/{lead_id}/automatic-follow-up."""

    interval_days: int = Field(1, ge=MIN_FOLLOW_UP_INTERVAL_DAYS, le=365)


class FollowUpScheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lead_id: UUID
    automatic_follow_up_enabled: bool
    automatic_follow_up_interval: int
    next_automatic_follow_up: Optional[datetime] = None


class LeadFollowUpOutcome(BaseModel):
    """What happened to one lead during a follow-up cycle."""

    lead_id: UUID
    email: ChannelResult
    sms: ChannelResult
    next_automatic_follow_up: datetime


class FollowUpCycleSummary(BaseModel):
    processed: int = 0
    emails_sent: int = 0
    sms_sent: int = 0
    skipped: bool = False
    outcomes: List[LeadFollowUpOutcome] = Field(default_factory=list)
