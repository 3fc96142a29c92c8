"""
Report repository: report log and moderation queue queries.
"""
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tribunal.core.constants import SEVERITY_RANK, ContentKind, ReportStatus
from tribunal.models.report import TARGET_COLUMNS, Report
from tribunal.repositories.base import BaseRepository


class ReportRepository(BaseRepository[Report]):
    """Repository for abuse reports."""

    def __init__(self, db: AsyncSession):
        super().__init__(Report, db)

    async def count_windows(
        self,
        reporter_id: str,
        hour_start: datetime,
        day_start: datetime,
    ) -> tuple[int, int]:
        """
        Count a reporter's reports in the trailing hour and day.

        Both counts come from one statement so they observe the same
        snapshot of the report log.

        Returns:
            Tuple of (hourly_count, daily_count)
        """
        query = select(
            func.coalesce(
                func.sum(case((Report.created_at > hour_start, 1), else_=0)), 0
            ),
            func.count(Report.id),
        ).where(
            Report.reporter_id == reporter_id,
            Report.created_at > day_start,
        )
        result = await self.db.execute(query)
        hourly, daily = result.one()
        return int(hourly or 0), int(daily or 0)

    async def find_recent_duplicate(
        self,
        reporter_id: str,
        target_kind: ContentKind,
        target_id: str,
        since: datetime,
    ) -> Optional[Report]:
        """Latest report by this reporter on this target created after ``since``."""
        column = getattr(Report, TARGET_COLUMNS[target_kind])
        query = (
            select(Report)
            .where(
                Report.reporter_id == reporter_id,
                column == target_id,
                Report.created_at > since,
            )
            .order_by(Report.created_at.desc())
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def queue(
        self,
        *,
        community_id: Optional[str] = None,
        statuses: Sequence[ReportStatus] = (ReportStatus.PENDING, ReportStatus.UNDER_REVIEW),
        limit: int = 50,
    ) -> Sequence[Report]:
        """
        Reports awaiting moderation, most severe first, then oldest first.

        Args:
            community_id: Restrict to one community (moderator view)
            statuses: Report statuses to include
            limit: Maximum reports to return
        """
        severity_order = case(
            {level: rank for level, rank in SEVERITY_RANK.items()},
            value=Report.severity_level,
        )
        query = select(Report).where(Report.status.in_(list(statuses)))
        if community_id is not None:
            query = query.where(Report.community_id == community_id)
        query = query.order_by(severity_order, Report.created_at.asc()).limit(limit)
        result = await self.db.execute(query)
        return result.scalars().all()
