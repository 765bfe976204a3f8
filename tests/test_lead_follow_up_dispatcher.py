from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from app.core.constants import DEFAULT_SMS_TEMPLATE
from app.core.exceptions import (
    ChannelDeliveryError,
    InvalidFollowUpIntervalError,
    LeadNotFoundError,
)
from app.schemas.common import ChannelOutcome
from app.services.lead_follow_up_dispatcher import DueFollowUp, LeadFollowUpDispatcher

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)

REPO_PATH = "app.services.lead_follow_up_dispatcher.LeadRepository"


def _lead(**overrides):
    values = dict(
        lead_id=uuid4(),
        organization_id=uuid4(),
        name="Jordan Lee",
        email="jordan@example.com",
        phone="+15553334444",
        service_description="roof repair",
        automatic_follow_up_interval=2,
        automatic_follow_up_template=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _organization(twilio=True, **overrides):
    values = dict(
        organization_id=uuid4(),
        name="Acme Roofing",
        email="office@acme.test",
        twilio_account_sid="AC123" if twilio else None,
        twilio_auth_token="secret" if twilio else None,
        twilio_phone_number=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _configure_repo(mock_cls, *, due=(), lead=None):
    repo = mock_cls.return_value
    repo.get_due_for_follow_up = AsyncMock(return_value=list(due))
    repo.get_by_id = AsyncMock(return_value=lead)
    repo.record_follow_up = AsyncMock()
    repo.set_follow_up_schedule = AsyncMock()
    repo.commit = AsyncMock()
    repo.rollback = AsyncMock()
    return repo


@pytest.fixture
def dispatcher(session_factory, email_channel, sms_channel):
    return LeadFollowUpDispatcher(
        session_factory,
        email_channel=email_channel,
        sms_channel=sms_channel,
        clock=lambda: NOW,
    )


class TestEnableDisable:
    """Verify turning automatic follow-up on and off."""

    @pytest.mark.asyncio
    async def test_enable_sets_next_follow_up_from_now(self, dispatcher):
        lead = _lead()

        with patch(REPO_PATH) as MockRepo:
            repo = _configure_repo(MockRepo, lead=lead)
            result = await dispatcher.enable_automatic_follow_up(lead.lead_id, 3)

        assert result.automatic_follow_up_enabled is True
        assert result.automatic_follow_up_interval == 3
        assert result.next_automatic_follow_up == NOW + timedelta(days=3)
        repo.set_follow_up_schedule.assert_awaited_once_with(
            lead.lead_id,
            enabled=True,
            next_follow_up=NOW + timedelta(days=3),
            interval_days=3,
        )
        repo.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_enable_defaults_to_one_day(self, dispatcher):
        lead = _lead()

        with patch(REPO_PATH) as MockRepo:
            _configure_repo(MockRepo, lead=lead)
            result = await dispatcher.enable_automatic_follow_up(lead.lead_id)

        assert result.next_automatic_follow_up == NOW + timedelta(days=1)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("interval", [0, -1])
    async def test_enable_rejects_non_positive_interval(self, dispatcher, interval):
        with patch(REPO_PATH) as MockRepo:
            repo = _configure_repo(MockRepo, lead=_lead())
            with pytest.raises(InvalidFollowUpIntervalError):
                await dispatcher.enable_automatic_follow_up(uuid4(), interval)

        repo.set_follow_up_schedule.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_enable_unknown_lead_raises(self, dispatcher):
        with patch(REPO_PATH) as MockRepo:
            _configure_repo(MockRepo, lead=None)
            with pytest.raises(LeadNotFoundError):
                await dispatcher.enable_automatic_follow_up(uuid4(), 1)

    @pytest.mark.asyncio
    async def test_disable_clears_next_follow_up(self, dispatcher):
        lead = _lead()

        with patch(REPO_PATH) as MockRepo:
            repo = _configure_repo(MockRepo, lead=lead)
            result = await dispatcher.disable_automatic_follow_up(lead.lead_id)

        assert result.automatic_follow_up_enabled is False
        assert result.next_automatic_follow_up is None
        repo.set_follow_up_schedule.assert_awaited_once_with(
            lead.lead_id, enabled=False, next_follow_up=None
        )


class TestDueFollowUp:
    def test_settings_templates_take_precedence(self):
        settings_row = SimpleNamespace(
            email_subject="About {service}",
            email_template="Hello {name} from {company}",
            sms_template=None,
        )
        follow_up = DueFollowUp.from_row(
            _lead(automatic_follow_up_template="Lead template"),
            _organization(),
            settings_row,
        )

        assert follow_up.email_template == "Hello {name} from {company}"
        assert follow_up.lead_template == "Lead template"
        assert follow_up.sms_template is None
        assert follow_up.render(follow_up.email_subject) == "About roof repair"

    def test_missing_settings_row(self):
        follow_up = DueFollowUp.from_row(_lead(), _organization(twilio=False), None)

        assert follow_up.email_template is None
        assert follow_up.twilio is None


class TestProcessAutomaticFollowUps:
    """Verify one follow-up cycle."""

    @pytest.mark.asyncio
    async def test_email_only_organization(self, dispatcher, email_channel, sms_channel):
        """Email configured, SMS not: one email, no SMS, next = now + interval."""
        lead = _lead(automatic_follow_up_interval=2)

        with patch(REPO_PATH) as MockRepo:
            repo = _configure_repo(
                MockRepo, due=[(lead, _organization(twilio=False), None)]
            )
            summary = await dispatcher.process_automatic_follow_ups()

        email_channel.send.assert_awaited_once()
        sms_channel.send.assert_not_awaited()
        repo.record_follow_up.assert_awaited_once_with(
            lead.lead_id,
            email_sent=True,
            sms_sent=False,
            followed_up_at=NOW,
            next_follow_up=NOW + timedelta(days=2),
        )
        assert summary.processed == 1
        assert summary.emails_sent == 1
        assert summary.sms_sent == 0
        outcome = summary.outcomes[0]
        assert outcome.email.outcome is ChannelOutcome.sent
        assert outcome.sms.outcome is ChannelOutcome.skipped

    @pytest.mark.asyncio
    async def test_email_rendered_from_organization_settings(self, dispatcher, email_channel):
        lead = _lead(name="Sam", service_description="gutter cleaning")
        settings_row = SimpleNamespace(
            email_subject="Your {service} quote",
            email_template="Hi {name}, {company} here.",
            sms_template=None,
        )

        with patch(REPO_PATH) as MockRepo:
            _configure_repo(MockRepo, due=[(lead, _organization(), settings_row)])
            await dispatcher.process_automatic_follow_ups()

        kwargs = email_channel.send.await_args.kwargs
        assert kwargs["to"] == lead.email
        assert kwargs["subject"] == "Your gutter cleaning quote"
        assert kwargs["text"] == "Hi Sam, Acme Roofing here."
        assert "Hi Sam, Acme Roofing here." in kwargs["html"]
        assert kwargs["from_email"] == "office@acme.test"
        assert kwargs["from_name"] == "Acme Roofing"

    @pytest.mark.asyncio
    async def test_sms_uses_default_template(self, dispatcher, sms_channel):
        lead = _lead(name="Sam", service_description="HVAC")

        with patch(REPO_PATH) as MockRepo:
            _configure_repo(MockRepo, due=[(lead, _organization(), None)])
            await dispatcher.process_automatic_follow_ups()

        expected = DEFAULT_SMS_TEMPLATE.replace("{name}", "Sam").replace("{service}", "HVAC")
        assert sms_channel.send.await_args.kwargs["body"] == expected
        assert sms_channel.send.await_args.kwargs["to"] == lead.phone

    @pytest.mark.asyncio
    async def test_all_channels_failing_still_advances_schedule(
        self, dispatcher, email_channel, sms_channel
    ):
        lead = _lead(automatic_follow_up_interval=1)
        email_channel.send = AsyncMock(side_effect=ChannelDeliveryError("SendGrid returned 503"))
        sms_channel.send = AsyncMock(side_effect=ChannelDeliveryError("Twilio returned 400"))

        with patch(REPO_PATH) as MockRepo:
            repo = _configure_repo(MockRepo, due=[(lead, _organization(), None)])
            summary = await dispatcher.process_automatic_follow_ups()

        repo.record_follow_up.assert_awaited_once_with(
            lead.lead_id,
            email_sent=False,
            sms_sent=False,
            followed_up_at=NOW,
            next_follow_up=NOW + timedelta(days=1),
        )
        outcome = summary.outcomes[0]
        assert outcome.email.outcome is ChannelOutcome.failed
        assert outcome.email.reason == "SendGrid returned 503"
        assert outcome.sms.outcome is ChannelOutcome.failed

    @pytest.mark.asyncio
    async def test_unconfigured_email_channel_is_skipped(self, dispatcher, email_channel):
        email_channel.is_configured = False

        with patch(REPO_PATH) as MockRepo:
            _configure_repo(MockRepo, due=[(_lead(), _organization(), None)])
            summary = await dispatcher.process_automatic_follow_ups()

        email_channel.send.assert_not_awaited()
        assert summary.outcomes[0].email.outcome is ChannelOutcome.skipped
        assert summary.sms_sent == 1

    @pytest.mark.asyncio
    async def test_tracking_failure_rolls_back_and_continues(self, dispatcher):
        first, second = _lead(), _lead()

        with patch(REPO_PATH) as MockRepo:
            repo = _configure_repo(
                MockRepo,
                due=[(first, _organization(), None), (second, _organization(), None)],
            )
            repo.record_follow_up = AsyncMock(side_effect=[RuntimeError("deadlock"), None])
            summary = await dispatcher.process_automatic_follow_ups()

        repo.rollback.assert_awaited_once()
        assert summary.processed == 1
        assert summary.outcomes[0].lead_id == second.lead_id

    @pytest.mark.asyncio
    async def test_failed_rollback_does_not_stop_batch(self, dispatcher):
        first, second = _lead(), _lead()

        with patch(REPO_PATH) as MockRepo:
            repo = _configure_repo(
                MockRepo,
                due=[(first, _organization(), None), (second, _organization(), None)],
            )
            repo.record_follow_up = AsyncMock(side_effect=[RuntimeError("db gone"), None])
            repo.rollback = AsyncMock(side_effect=RuntimeError("still gone"))
            summary = await dispatcher.process_automatic_follow_ups()

        assert summary.processed == 1
        assert summary.outcomes[0].lead_id == second.lead_id

    @pytest.mark.asyncio
    async def test_incomplete_lead_is_skipped(self, dispatcher, email_channel):
        broken = _lead(name=None)
        good = _lead()

        with patch(REPO_PATH) as MockRepo:
            repo = _configure_repo(
                MockRepo,
                due=[(broken, _organization(), None), (good, _organization(), None)],
            )
            summary = await dispatcher.process_automatic_follow_ups()

        assert summary.processed == 1
        repo.record_follow_up.assert_awaited_once()
        assert repo.record_follow_up.await_args.args[0] == good.lead_id

    @pytest.mark.asyncio
    async def test_overlapping_cycle_is_skipped(self, dispatcher):
        dispatcher._cycle_in_progress = True

        with patch(REPO_PATH) as MockRepo:
            repo = _configure_repo(MockRepo, due=[(_lead(), _organization(), None)])
            summary = await dispatcher.process_automatic_follow_ups()

        assert summary.skipped is True
        repo.get_due_for_follow_up.assert_not_awaited()
