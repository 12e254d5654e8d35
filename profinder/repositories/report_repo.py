"""
Report repository for database operations.
"""
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from profinder.models.report import Report
from profinder.repositories.base import BaseRepository


class ReportRepository(BaseRepository[Report]):
    """Repository for report database operations."""

    def __init__(self, db: AsyncSession):
        """Initialize report repository."""
        super().__init__(Report, db)

    async def find(self, reporter_id: str, reported_user_id: str) -> List[Report]:
        """Reports filed by one user against another."""
        result = await self.db.execute(
            select(Report).where(
                Report.reporter_id == reporter_id,
                Report.reported_user_id == reported_user_id,
            )
        )
        return list(result.scalars().all())

    async def delete_matching(self, reporter_id: str, reported_user_id: str) -> int:
        """
        Delete every report filed by one user against another.

        Returns:
            Number of reports deleted
        """
        result = await self.db.execute(
            delete(Report).where(
                Report.reporter_id == reporter_id,
                Report.reported_user_id == reported_user_id,
            )
        )
        await self.db.flush()
        return result.rowcount or 0

    async def list_recent(self, limit: int = 50, offset: int = 0) -> List[Report]:
        """Reports newest first, for admin review."""
        result = await self.db.execute(
            select(Report)
            .order_by(Report.created_at.desc(), Report.id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())
