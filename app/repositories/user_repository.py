from typing import Optional
from uuid import UUID

from sqlalchemy import select

from app.models.user import User
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository):
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        result = await self._db.execute(select(User).where(User.user_id == user_id))
        return result.scalar_one_or_none()
