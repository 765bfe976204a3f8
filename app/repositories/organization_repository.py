from typing import Optional
from uuid import UUID

from sqlalchemy import select

from app.models.organization import Organization
from app.repositories.base import BaseRepository


class OrganizationRepository(BaseRepository):
    """Read access to tenant settings (sender identity, Twilio credentials)."""

    async def get_by_id(self, organization_id: UUID) -> Optional[Organization]:
        result = await self._db.execute(
            select(Organization).where(
                Organization.organization_id == organization_id
            )
        )
        return result.scalar_one_or_none()
