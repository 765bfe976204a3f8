from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select, update, and_

from app.models.lead import Lead
from app.models.lead_settings import LeadSettings
from app.models.organization import Organization
from app.repositories.base import BaseRepository


class LeadRepository(BaseRepository):
    """Encapsulates every SQL query that touches the ``leads`` table."""

    async def get_by_id(self, lead_id: UUID) -> Optional[Lead]:
        """Return a single lead by primary key, or ``None``."""
        result = await self._db.execute(select(Lead).where(Lead.lead_id == lead_id))
        return result.scalar_one_or_none()

    async def get_due_for_follow_up(self, now: datetime) -> List[Any]:
        """Return ``(lead, organization, lead_settings)`` rows due at *now*.

        ``lead_settings`` is ``None`` for organizations that never saved
        custom templates.
        """
        query = (
            select(Lead, Organization, LeadSettings)
            .join(Organization, Lead.organization_id == Organization.organization_id)
            .outerjoin(
                LeadSettings,
                LeadSettings.organization_id == Lead.organization_id,
            )
            .where(
                and_(
                    Lead.automatic_follow_up_enabled.is_(True),
                    Lead.next_automatic_follow_up <= now,
                )
            )
        )
        result = await self._db.execute(query)
        return list(result.all())

    async def record_follow_up(
        self,
        lead_id: UUID,
        *,
        email_sent: bool,
        sms_sent: bool,
        followed_up_at: datetime,
        next_follow_up: datetime,
    ) -> None:
        """Advance the schedule and bump counters in one single-row update."""
        await self._db.execute(
            update(Lead)
            .where(Lead.lead_id == lead_id)
            .values(
                automatic_follow_up_count=Lead.automatic_follow_up_count
                + (1 if email_sent or sms_sent else 0),
                automatic_follow_up_email_count=Lead.automatic_follow_up_email_count
                + (1 if email_sent else 0),
                automatic_follow_up_sms_count=Lead.automatic_follow_up_sms_count
                + (1 if sms_sent else 0),
                last_automatic_follow_up=followed_up_at,
                next_automatic_follow_up=next_follow_up,
            )
        )

    async def set_follow_up_schedule(
        self,
        lead_id: UUID,
        *,
        enabled: bool,
        next_follow_up: Optional[datetime],
        interval_days: Optional[int] = None,
    ) -> None:
        values: dict = {
            "automatic_follow_up_enabled": enabled,
            "next_automatic_follow_up": next_follow_up,
        }
        if interval_days is not None:
            values["automatic_follow_up_interval"] = interval_days
        await self._db.execute(
            update(Lead).where(Lead.lead_id == lead_id).values(**values)
        )
