from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from app.api.deps import (
    get_lead_follow_up_dispatcher,
    get_organization_repo,
    get_task_notification_scheduler,
)
from app.core.exceptions import LeadNotFoundError, TaskNotFoundError, UserNotFoundError
from app.main import app
from app.schemas.lead import FollowUpCycleSummary, FollowUpScheduleResponse
from app.schemas.task_notification import NotificationCycleSummary, NotificationStats

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _notification_row(task_id, hours):
    return SimpleNamespace(
        notification_id=uuid4(),
        task_id=task_id,
        user_id=uuid4(),
        organization_id=uuid4(),
        notification_type=f"{hours}h",
        hours_before_due=hours,
        subject=f"Task Due in {hours} Hours",
        message="Your task is due soon.",
        scheduled_for=NOW + timedelta(hours=30 - hours),
        status="pending",
        is_email_sent=False,
        is_sms_sent=False,
        is_realtime_sent=False,
        failure_reason=None,
        sent_at=None,
    )


@pytest.fixture
def scheduler() -> MagicMock:
    scheduler = MagicMock()
    app.dependency_overrides[get_task_notification_scheduler] = lambda: scheduler
    return scheduler


@pytest.fixture
def dispatcher() -> MagicMock:
    dispatcher = MagicMock()
    app.dependency_overrides[get_lead_follow_up_dispatcher] = lambda: dispatcher
    return dispatcher


@pytest.fixture
def organization_repo() -> MagicMock:
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=SimpleNamespace(organization_id=uuid4()))
    app.dependency_overrides[get_organization_repo] = lambda: repo
    return repo


class TestCORSMiddleware:
    """Verify that CORS headers are present on responses."""

    @pytest.mark.asyncio
    async def test_cors_headers_on_preflight(self, async_client):
        """OPTIONS request should return Access-Control-Allow-Origin."""
        response = await async_client.options(
            "/api/v1/health",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "GET",
            },
        )
        assert "access-control-allow-origin" in response.headers

    @pytest.mark.asyncio
    async def test_cors_headers_on_get(self, async_client):
        response = await async_client.get(
            "/api/v1/health", headers={"Origin": "http://localhost:3000"}
        )
        assert response.status_code == 200
        assert (
            response.headers.get("access-control-allow-origin")
            == "http://localhost:3000"
        )


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_health_returns_ok(self, async_client):
        response = await async_client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestTaskNotificationEndpoints:
    """Verify the task reminder routes against a mocked scheduler."""

    @pytest.mark.asyncio
    async def test_schedule_returns_created_rows(self, async_client, scheduler):
        task_id = uuid4()
        scheduler.schedule_for_stored_task = AsyncMock(
            return_value=[_notification_row(task_id, h) for h in (24, 12)]
        )

        response = await async_client.post(f"/api/v1/tasks/{task_id}/notifications")

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["created"] == 2
        assert [n["notification_type"] for n in body["notifications"]] == ["24h", "12h"]
        scheduler.schedule_for_stored_task.assert_awaited_once_with(task_id)

    @pytest.mark.asyncio
    async def test_schedule_unknown_task_returns_404(self, async_client, scheduler):
        scheduler.schedule_for_stored_task = AsyncMock(
            side_effect=TaskNotFoundError("Task not found")
        )

        response = await async_client.post(f"/api/v1/tasks/{uuid4()}/notifications")

        assert response.status_code == 404
        assert response.json()["type"] == "task_not_found"

    @pytest.mark.asyncio
    async def test_list_history(self, async_client, scheduler):
        task_id = uuid4()
        scheduler.get_notifications_for_task = AsyncMock(
            return_value=[_notification_row(task_id, 1)]
        )

        response = await async_client.get(f"/api/v1/tasks/{task_id}/notifications")

        assert response.status_code == 200
        assert response.json()[0]["status"] == "pending"

    @pytest.mark.asyncio
    async def test_cancel_returns_count(self, async_client, scheduler):
        task_id = uuid4()
        scheduler.cancel_for_task = AsyncMock(return_value=3)

        response = await async_client.delete(f"/api/v1/tasks/{task_id}/notifications")

        assert response.status_code == 200
        assert response.json() == {"success": True, "task_id": str(task_id), "cancelled": 3}

    @pytest.mark.asyncio
    async def test_reschedule_persists_due_date(self, async_client, scheduler):
        task_id = uuid4()
        scheduler.reschedule_for_task = AsyncMock(return_value=[])

        response = await async_client.put(
            f"/api/v1/tasks/{task_id}/due-date",
            json={"due_date": "2026-03-12T09:00:00Z"},
        )

        assert response.status_code == 200
        assert response.json()["created"] == 0
        args, kwargs = scheduler.reschedule_for_task.await_args
        assert args[0] == task_id
        assert args[1] == datetime(2026, 3, 12, 9, 0, tzinfo=timezone.utc)
        assert kwargs == {"persist_due_date": True}

    @pytest.mark.asyncio
    async def test_reschedule_invalid_body_returns_422(self, async_client, scheduler):
        response = await async_client.put(
            f"/api/v1/tasks/{uuid4()}/due-date", json={"due_date": "tomorrow-ish"}
        )

        assert response.status_code == 422
        body = response.json()
        assert body["type"] == "validation_error"
        assert body["detail"] == "Request validation failed"

    @pytest.mark.asyncio
    async def test_reschedule_unknown_task_returns_404(self, async_client, scheduler):
        scheduler.reschedule_for_task = AsyncMock(
            side_effect=TaskNotFoundError("Task not found")
        )

        response = await async_client.put(
            f"/api/v1/tasks/{uuid4()}/due-date",
            json={"due_date": "2026-03-12T09:00:00Z"},
        )

        assert response.status_code == 404
        assert response.json()["type"] == "task_not_found"

    @pytest.mark.asyncio
    async def test_reassign_returns_new_rows(self, async_client, scheduler):
        task_id, user_id = uuid4(), uuid4()
        scheduler.reassign_task = AsyncMock(
            return_value=[_notification_row(task_id, h) for h in (6, 3, 1)]
        )

        response = await async_client.put(
            f"/api/v1/tasks/{task_id}/assignee", json={"user_id": str(user_id)}
        )

        assert response.status_code == 200
        assert response.json()["created"] == 3
        scheduler.reassign_task.assert_awaited_once_with(task_id, user_id)

    @pytest.mark.asyncio
    async def test_reassign_unknown_user_returns_404(self, async_client, scheduler):
        scheduler.reassign_task = AsyncMock(side_effect=UserNotFoundError("User not found"))

        response = await async_client.put(
            f"/api/v1/tasks/{uuid4()}/assignee", json={"user_id": str(uuid4())}
        )

        assert response.status_code == 404
        assert response.json() == {"detail": "User not found", "type": "user_not_found"}

    @pytest.mark.asyncio
    async def test_delete_task_returns_cancelled_count(self, async_client, scheduler):
        task_id = uuid4()
        scheduler.delete_task = AsyncMock(return_value=2)

        response = await async_client.delete(f"/api/v1/tasks/{task_id}")

        assert response.status_code == 200
        assert response.json() == {"success": True, "task_id": str(task_id), "cancelled": 2}
        scheduler.delete_task.assert_awaited_once_with(task_id)

    @pytest.mark.asyncio
    async def test_delete_unknown_task_returns_404(self, async_client, scheduler):
        scheduler.delete_task = AsyncMock(side_effect=TaskNotFoundError("Task not found"))

        response = await async_client.delete(f"/api/v1/tasks/{uuid4()}")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_complete_task(self, async_client, scheduler):
        scheduler.complete_task = AsyncMock(return_value=2)

        response = await async_client.post(f"/api/v1/tasks/{uuid4()}/complete")

        assert response.status_code == 200
        assert response.json()["cancelled"] == 2

    @pytest.mark.asyncio
    async def test_process_pending(self, async_client, scheduler):
        scheduler.process_pending = AsyncMock(
            return_value=NotificationCycleSummary(processed=2, sent=1, failed=1)
        )

        response = await async_client.post("/api/v1/notifications/process")

        assert response.status_code == 200
        assert response.json() == {
            "processed": 2,
            "sent": 1,
            "failed": 1,
            "skipped": False,
        }


class TestNotificationStatsEndpoint:
    @pytest.mark.asyncio
    async def test_stats_for_known_organization(
        self, async_client, scheduler, organization_repo
    ):
        scheduler.get_notification_stats = AsyncMock(
            return_value=NotificationStats(total=5, pending=2, sent=3)
        )

        response = await async_client.get(
            f"/api/v1/organizations/{uuid4()}/notifications/stats"
        )

        assert response.status_code == 200
        assert response.json()["total"] == 5

    @pytest.mark.asyncio
    async def test_stats_unknown_organization_returns_404(
        self, async_client, scheduler, organization_repo
    ):
        organization_repo.get_by_id = AsyncMock(return_value=None)
        scheduler.get_notification_stats = AsyncMock()

        response = await async_client.get(
            f"/api/v1/organizations/{uuid4()}/notifications/stats"
        )

        assert response.status_code == 404
        assert response.json()["type"] == "organization_not_found"
        scheduler.get_notification_stats.assert_not_awaited()


class TestLeadFollowUpEndpoints:
    """Verify the automatic follow-up routes against a mocked dispatcher."""

    @pytest.mark.asyncio
    async def test_enable(self, async_client, dispatcher):
        lead_id = uuid4()
        dispatcher.enable_automatic_follow_up = AsyncMock(
            return_value=FollowUpScheduleResponse(
                lead_id=lead_id,
                automatic_follow_up_enabled=True,
                automatic_follow_up_interval=2,
                next_automatic_follow_up=NOW + timedelta(days=2),
            )
        )

        response = await async_client.post(
            f"/api/v1/leads/{lead_id}/automatic-follow-up", json={"interval_days": 2}
        )

        assert response.status_code == 200
        assert response.json()["automatic_follow_up_interval"] == 2
        dispatcher.enable_automatic_follow_up.assert_awaited_once_with(lead_id, 2)

    @pytest.mark.asyncio
    async def test_enable_zero_interval_returns_422(self, async_client, dispatcher):
        dispatcher.enable_automatic_follow_up = AsyncMock()

        response = await async_client.post(
            f"/api/v1/leads/{uuid4()}/automatic-follow-up", json={"interval_days": 0}
        )

        assert response.status_code == 422
        dispatcher.enable_automatic_follow_up.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disable_unknown_lead_returns_404(self, async_client, dispatcher):
        dispatcher.disable_automatic_follow_up = AsyncMock(
            side_effect=LeadNotFoundError("Lead not found")
        )

        response = await async_client.delete(
            f"/api/v1/leads/{uuid4()}/automatic-follow-up"
        )

        assert response.status_code == 404
        assert response.json() == {"detail": "Lead not found", "type": "lead_not_found"}

    @pytest.mark.asyncio
    async def test_process_follow_ups(self, async_client, dispatcher):
        dispatcher.process_automatic_follow_ups = AsyncMock(
            return_value=FollowUpCycleSummary(processed=1, emails_sent=1)
        )

        response = await async_client.post("/api/v1/leads/automatic-follow-ups/process")

        assert response.status_code == 200
        body = response.json()
        assert body["processed"] == 1
        assert body["emails_sent"] == 1
        assert body["outcomes"] == []
