"""
Shared record access for the string-keyed ProFinder tables.
Repositories flush but never commit; RelationshipStore owns the transaction.
"""
from typing import Generic, List, Optional, Type, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from profinder.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Get, batch-get, insert and hard-delete by primary key."""

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    async def create(self, **kwargs) -> ModelType:
        """
        Insert a record and return it with server defaults loaded.

        Example:
            ```python
            report = await report_repo.create(reporter_id="u1", reported_user_id="u2", reason="Spam")
            ```
        """
        record = self.model(**kwargs)
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)
        return record

    async def get(self, record_id: str, for_update: bool = False) -> Optional[ModelType]:
        """
        Load one record.

        Args:
            record_id: Primary key
            for_update: Take a row lock before a read-modify-write of a
                relationship set or reaction map (no-op on SQLite)
        """
        stmt = select(self.model).where(self.model.id == record_id)
        if for_update:
            stmt = stmt.with_for_update()
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_many(self, record_ids: List[str]) -> List[ModelType]:
        """Load several records in one query; unknown IDs are skipped."""
        if not record_ids:
            return []
        stmt = select(self.model).where(self.model.id.in_(record_ids))
        return list((await self.db.execute(stmt)).scalars().all())

    async def delete(self, record_id: str) -> bool:
        """Hard-delete a record. Returns False when it did not exist."""
        result = await self.db.execute(delete(self.model).where(self.model.id == record_id))
        await self.db.flush()
        return result.rowcount > 0
