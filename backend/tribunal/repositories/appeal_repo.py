"""
Appeal repository.
"""
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tribunal.core.constants import AppealStatus, TERMINAL_APPEAL_STATUSES
from tribunal.models.appeal import Appeal
from tribunal.repositories.base import BaseRepository

OPEN_APPEAL_STATUSES = [s for s in AppealStatus if s not in TERMINAL_APPEAL_STATUSES]


class AppealRepository(BaseRepository[Appeal]):
    """Repository for sanction appeals."""

    def __init__(self, db: AsyncSession):
        super().__init__(Appeal, db)

    async def find_open_for_sanction(self, sanction_id: str) -> Optional[Appeal]:
        """The non-terminal appeal on a sanction, if one exists."""
        result = await self.db.execute(
            select(Appeal).where(Appeal.open_sanction_key == sanction_id)
        )
        return result.scalar_one_or_none()

    async def count_open_for_appellant(self, appellant_id: str) -> int:
        result = await self.db.execute(
            select(func.count(Appeal.id)).where(
                Appeal.appellant_id == appellant_id,
                Appeal.status.in_(OPEN_APPEAL_STATUSES),
            )
        )
        return result.scalar() or 0
