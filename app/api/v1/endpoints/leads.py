from uuid import UUID

from fastapi import APIRouter, Depends, Request

from app.api.deps import get_lead_follow_up_dispatcher
from app.core.rate_limit import limiter
from app.schemas.lead import (
    EnableFollowUpRequest,
    FollowUpCycleSummary,
    FollowUpScheduleResponse,
)
from app.services.lead_follow_up_dispatcher import LeadFollowUpDispatcher

router = APIRouter(prefix="/leads", tags=["Lead Follow-ups"])


@router.post(
    "/automatic-follow-ups/process",
    response_model=FollowUpCycleSummary,
)
@limiter.limit("2/minute")
async def process_automatic_follow_ups(
    request: Request,
    dispatcher: LeadFollowUpDispatcher = Depends(get_lead_follow_up_dispatcher),
) -> FollowUpCycleSummary:
    """Run one follow-up cycle now (used by the external daily cron)."""
    return await dispatcher.process_automatic_follow_ups()


@router.post(
    "/{lead_id}/automatic-follow-up",
    response_model=FollowUpScheduleResponse,
)
async def enable_automatic_follow_up(
    lead_id: UUID,
    body: EnableFollowUpRequest,
    dispatcher: LeadFollowUpDispatcher = Depends(get_lead_follow_up_dispatcher),
) -> FollowUpScheduleResponse:
    return await dispatcher.enable_automatic_follow_up(lead_id, body.interval_days)


@router.delete(
    "/{lead_id}/automatic-follow-up",
    response_model=FollowUpScheduleResponse,
)
async def disable_automatic_follow_up(
    lead_id: UUID,
    dispatcher: LeadFollowUpDispatcher = Depends(get_lead_follow_up_dispatcher),
) -> FollowUpScheduleResponse:
    return await dispatcher.disable_automatic_follow_up(lead_id)
