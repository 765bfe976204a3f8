import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.constants import (
    DEFAULT_EMAIL_SUBJECT,
    DEFAULT_EMAIL_TEMPLATE,
    DEFAULT_SMS_TEMPLATE,
    MIN_FOLLOW_UP_INTERVAL_DAYS,
)
from app.core.exceptions import InvalidFollowUpIntervalError, LeadNotFoundError
from app.repositories.lead_repository import LeadRepository
from app.schemas.channel import ChannelResult
from app.schemas.lead import (
    FollowUpCycleSummary,
    FollowUpScheduleResponse,
    LeadFollowUpOutcome,
)
from app.services.channels import SendGridEmailChannel, TwilioCredentials, TwilioSmsChannel
from app.services.periodic import PeriodicDispatcher
from app.services.templating import render_follow_up_html, render_template

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DueFollowUp(BaseModel):
    """Detached snapshot of a lead due for follow-up plus its tenant settings."""

    lead_id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    service: str = ""
    interval_days: int = 1
    lead_template: Optional[str] = None
    organization_id: UUID
    organization_name: str = ""
    organization_email: Optional[str] = None
    twilio: Optional[TwilioCredentials] = None
    email_subject: Optional[str] = None
    email_template: Optional[str] = None
    sms_template: Optional[str] = None

    @classmethod
    def from_row(cls, lead, organization, lead_settings) -> "DueFollowUp":
        return cls(
            lead_id=lead.lead_id,
            name=lead.name,
            email=lead.email or None,
            phone=lead.phone or None,
            service=lead.service_description or "",
            interval_days=lead.automatic_follow_up_interval or 1,
            lead_template=lead.automatic_follow_up_template or None,
            organization_id=lead.organization_id,
            organization_name=organization.name or "",
            organization_email=organization.email or None,
            twilio=TwilioCredentials.from_organization(organization),
            email_subject=getattr(lead_settings, "email_subject", None) or None,
            email_template=getattr(lead_settings, "email_template", None) or None,
            sms_template=getattr(lead_settings, "sms_template", None) or None,
        )

    def render(self, template: str) -> str:
        return render_template(
            template,
            name=self.name,
            service=self.service,
            company=self.organization_name,
        )


class LeadFollowUpDispatcher(PeriodicDispatcher):
    """Sends templated automatic follow-ups to leads whose due time has passed.

    Email and SMS are attempted independently.  Whatever the outcome, the
    lead's next follow-up is pushed ``interval`` days past the cycle time,
    so a lead whose channels are all down is not retried sooner.
    """

    name = "lead-follow-up-dispatcher"

    def __init__(
        self,
        session_factory: Callable[..., AsyncSession],
        *,
        email_channel: SendGridEmailChannel,
        sms_channel: TwilioSmsChannel,
        interval_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(interval_seconds or settings.LEAD_FOLLOW_UP_INTERVAL_SECONDS)
        self._session_factory = session_factory
        self._email = email_channel
        self._sms = sms_channel
        self._clock = clock

    # ------------------------------------------------------------------
    # Enable / disable
    # ------------------------------------------------------------------

    async def enable_automatic_follow_up(
        self, lead_id: UUID, interval_days: int = 1
    ) -> FollowUpScheduleResponse:
        if interval_days < MIN_FOLLOW_UP_INTERVAL_DAYS:
            raise InvalidFollowUpIntervalError(
                f"Follow-up interval must be at least {MIN_FOLLOW_UP_INTERVAL_DAYS} "
                f"day(s), got {interval_days}"
            )
        next_follow_up = self._clock() + timedelta(days=interval_days)
        async with self._session_factory() as session:
            repo = LeadRepository(session)
            if await repo.get_by_id(lead_id) is None:
                raise LeadNotFoundError(f"Lead {lead_id} not found")
            await repo.set_follow_up_schedule(
                lead_id,
                enabled=True,
                next_follow_up=next_follow_up,
                interval_days=interval_days,
            )
            await repo.commit()
        logger.info(
            "Enabled automatic follow-up for lead %s with %d day interval",
            lead_id,
            interval_days,
        )
        return FollowUpScheduleResponse(
            lead_id=lead_id,
            automatic_follow_up_enabled=True,
            automatic_follow_up_interval=interval_days,
            next_automatic_follow_up=next_follow_up,
        )

    async def disable_automatic_follow_up(self, lead_id: UUID) -> FollowUpScheduleResponse:
        async with self._session_factory() as session:
            repo = LeadRepository(session)
            lead = await repo.get_by_id(lead_id)
            if lead is None:
                raise LeadNotFoundError(f"Lead {lead_id} not found")
            interval_days = lead.automatic_follow_up_interval or 1
            await repo.set_follow_up_schedule(
                lead_id, enabled=False, next_follow_up=None
            )
            await repo.commit()
        logger.info("Disabled automatic follow-up for lead %s", lead_id)
        return FollowUpScheduleResponse(
            lead_id=lead_id,
            automatic_follow_up_enabled=False,
            automatic_follow_up_interval=interval_days,
            next_automatic_follow_up=None,
        )

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    async def _send_email(self, follow_up: DueFollowUp) -> ChannelResult:
        if not follow_up.email:
            return ChannelResult.skipped("lead has no email")
        if not self._email.is_configured:
            return ChannelResult.skipped("email channel not configured")

        body = follow_up.render(
            follow_up.email_template or follow_up.lead_template or DEFAULT_EMAIL_TEMPLATE
        )
        subject = follow_up.render(follow_up.email_subject or DEFAULT_EMAIL_SUBJECT)
        sender_name = follow_up.organization_name or settings.DEFAULT_FROM_NAME
        try:
            await self._email.send(
                to=follow_up.email,
                subject=subject,
                text=body,
                html=render_follow_up_html(subject, body, sender_name),
                from_email=follow_up.organization_email,
                from_name=sender_name,
            )
        except Exception as exc:
            logger.error(
                "Failed to send follow-up email to %s: %s",
                follow_up.email,
                exc,
                exc_info=True,
            )
            return ChannelResult.failed(str(exc) or type(exc).__name__)
        logger.info("Follow-up email sent to %s", follow_up.email)
        return ChannelResult.sent()

    async def _send_sms(self, follow_up: DueFollowUp) -> ChannelResult:
        if not follow_up.phone:
            return ChannelResult.skipped("lead has no phone")
        if follow_up.twilio is None:
            return ChannelResult.skipped(
                f"SMS not configured for organization {follow_up.organization_id}"
            )

        body = follow_up.render(follow_up.sms_template or DEFAULT_SMS_TEMPLATE)
        try:
            await self._sms.send(follow_up.twilio, to=follow_up.phone, body=body)
        except Exception as exc:
            logger.error(
                "Failed to send follow-up SMS to %s: %s",
                follow_up.phone,
                exc,
                exc_info=True,
            )
            return ChannelResult.failed(str(exc) or type(exc).__name__)
        logger.info("Follow-up SMS sent to %s", follow_up.phone)
        return ChannelResult.sent()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def process_automatic_follow_ups(self) -> FollowUpCycleSummary:
        """Process every due lead once; skipped while a cycle is running."""
        summary = await self._guarded(self._process_cycle)
        if summary is None:
            return FollowUpCycleSummary(skipped=True)
        return summary

    async def run_cycle(self) -> FollowUpCycleSummary:
        return await self.process_automatic_follow_ups()

    async def _process_cycle(self) -> FollowUpCycleSummary:
        logger.info("Starting automatic lead follow-up processing")
        now = self._clock()
        summary = FollowUpCycleSummary()

        async with self._session_factory() as session:
            repo = LeadRepository(session)
            rows = await repo.get_due_for_follow_up(now)
            logger.info("Found %d lead(s) due for automatic follow-up", len(rows))

            due = []
            for lead, organization, lead_settings in rows:
                try:
                    due.append(DueFollowUp.from_row(lead, organization, lead_settings))
                except Exception:
                    logger.error(
                        "Skipping lead %s: incomplete follow-up data",
                        lead.lead_id,
                        exc_info=True,
                    )

            for follow_up in due:
                email_result = await self._send_email(follow_up)
                sms_result = await self._send_sms(follow_up)
                next_follow_up = now + timedelta(days=follow_up.interval_days)
                try:
                    await repo.record_follow_up(
                        follow_up.lead_id,
                        email_sent=email_result.is_sent,
                        sms_sent=sms_result.is_sent,
                        followed_up_at=now,
                        next_follow_up=next_follow_up,
                    )
                    await repo.commit()
                except Exception:
                    logger.error(
                        "Failed to update follow-up tracking for lead %s",
                        follow_up.lead_id,
                        exc_info=True,
                    )
                    try:
                        await repo.rollback()
                    except Exception:
                        logger.error(
                            "Rollback failed after lead %s",
                            follow_up.lead_id,
                            exc_info=True,
                        )
                    continue

                logger.info(
                    "Updated tracking for lead %s: email=%s, sms=%s, next=%s",
                    follow_up.lead_id,
                    email_result.outcome.value,
                    sms_result.outcome.value,
                    next_follow_up.isoformat(),
                )
                summary.processed += 1
                summary.emails_sent += int(email_result.is_sent)
                summary.sms_sent += int(sms_result.is_sent)
                summary.outcomes.append(
                    LeadFollowUpOutcome(
                        lead_id=follow_up.lead_id,
                        email=email_result,
                        sms=sms_result,
                        next_automatic_follow_up=next_follow_up,
                    )
                )

        logger.info("Automatic lead follow-up processing completed")
        return summary
