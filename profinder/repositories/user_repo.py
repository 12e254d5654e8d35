"""
User repository for database operations.
Handles profile CRUD, relationship set updates, and discovery search.
"""
from typing import Dict, Iterable, List, Optional

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from profinder.models.user import User, RELATIONSHIP_FIELDS
from profinder.repositories.base import BaseRepository
from profinder.utils.helpers import add_to_set, remove_from_set, utc_now

# Columns the admin user list can be ordered by
SORTABLE_FIELDS = ("id", "name", "email", "age", "location", "area", "profession", "created_at")


class UserRepository(BaseRepository[User]):
    """Repository for user database operations."""

    def __init__(self, db: AsyncSession):
        """Initialize user repository."""
        super().__init__(User, db)

    async def apply_set_changes(
        self,
        user_id: str,
        add: Optional[Dict[str, Iterable[str]]] = None,
        remove: Optional[Dict[str, Iterable[str]]] = None,
        **fields
    ) -> Optional[User]:
        """
        Apply field-level set additions/removals and plain field updates.

        The row is locked for the read-modify-write so concurrent updates
        of the same user serialize. Additions are applied before removals.

        Args:
            user_id: User ID
            add: Relationship field -> IDs to add
            remove: Relationship field -> IDs to remove
            **fields: Plain column values to set

        Returns:
            Updated user, or None if the user does not exist

        Raises:
            ValueError: If a set change names a non-relationship field

        Example:
            ```python
            user = await user_repo.apply_set_changes(
                "u2",
                add={"connections": ["u1"]},
                remove={"pending_connections": ["u1"]},
            )
            ```
        """
        user = await self.get(user_id, for_update=True)
        if user is None:
            return None

        for field, ids in (add or {}).items():
            if field not in RELATIONSHIP_FIELDS:
                raise ValueError(f"Not a relationship field: {field}")
            setattr(user, field, add_to_set(getattr(user, field), ids))

        for field, ids in (remove or {}).items():
            if field not in RELATIONSHIP_FIELDS:
                raise ValueError(f"Not a relationship field: {field}")
            setattr(user, field, remove_from_set(getattr(user, field), ids))

        for key, value in fields.items():
            setattr(user, key, value)

        user.updated_at = utc_now()
        await self.db.flush()
        return user

    async def find_referencing(self, user_id: str) -> List[User]:
        """
        Find users whose relationship sets mention a user ID.

        Uses a text prefilter on the JSON columns (portable across
        PostgreSQL and SQLite), then an exact membership check.

        Args:
            user_id: Referenced user ID

        Returns:
            Users (other than user_id) that reference it in any set
        """
        needle = f'%"{user_id}"%'
        result = await self.db.execute(
            select(User).where(
                User.id != user_id,
                or_(*[
                    cast(getattr(User, field), String).like(needle)
                    for field in RELATIONSHIP_FIELDS
                ])
            )
        )

        return [
            user for user in result.scalars().all()
            if any(user_id in (getattr(user, field) or []) for field in RELATIONSHIP_FIELDS)
        ]

    @staticmethod
    def _discovery_filters(
        query: Optional[str] = None,
        area: Optional[str] = None,
        profession: Optional[str] = None,
        location: Optional[str] = None,
        exclude_id: Optional[str] = None,
        include_suspended: bool = False
    ) -> list:
        conditions = []
        if not include_suspended:
            conditions.append(User.is_suspended.is_(False))
        if exclude_id:
            conditions.append(User.id != exclude_id)

        if query and query.strip():
            search_term = f"%{query.strip().lower()}%"
            conditions.append(
                or_(
                    func.lower(User.name).like(search_term),
                    func.lower(User.area).like(search_term),
                    func.lower(User.profession).like(search_term),
                )
            )

        if area:
            conditions.append(User.area == area)
        if profession:
            conditions.append(User.profession == profession)
        if location:
            conditions.append(User.location == location)
        return conditions

    async def search_users(
        self,
        query: Optional[str] = None,
        area: Optional[str] = None,
        profession: Optional[str] = None,
        location: Optional[str] = None,
        exclude_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> List[User]:
        """
        Search users for discovery.

        Text search matches name, area, or profession case-insensitively;
        area, profession and location are exact filters. Suspended users
        never match.

        Args:
            query: Search text
            area: Area filter
            profession: Profession filter
            location: Location filter
            exclude_id: User to leave out (the searcher)
            limit: Maximum number of results
            offset: Number of records to skip

        Returns:
            Matching users ordered by name
        """
        conditions = self._discovery_filters(query, area, profession, location, exclude_id)
        result = await self.db.execute(
            select(User)
            .where(*conditions)
            .order_by(User.name, User.id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def count_matching(
        self,
        query: Optional[str] = None,
        area: Optional[str] = None,
        profession: Optional[str] = None,
        location: Optional[str] = None,
        exclude_id: Optional[str] = None,
        include_suspended: bool = False
    ) -> int:
        """Number of users a search would match across all pages."""
        conditions = self._discovery_filters(
            query, area, profession, location, exclude_id, include_suspended
        )
        result = await self.db.execute(
            select(func.count()).select_from(User).where(*conditions)
        )
        return result.scalar() or 0

    async def list_sorted(
        self,
        query: Optional[str] = None,
        sort_by: str = "created_at",
        descending: bool = True,
        limit: int = 20,
        offset: int = 0
    ) -> List[User]:
        """
        List every user, suspended ones included, for administration.

        Args:
            query: Optional search text (same matching as discovery)
            sort_by: One of SORTABLE_FIELDS
            descending: Sort direction
            limit: Maximum number of results
            offset: Number of records to skip

        Raises:
            ValueError: If sort_by is not sortable
        """
        if sort_by not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot sort users by {sort_by}")

        column = getattr(User, sort_by)
        order = column.desc() if descending else column.asc()
        result = await self.db.execute(
            select(User)
            .where(*self._discovery_filters(query, include_suspended=True))
            .order_by(order, User.id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def list_all(self, limit: int = 500, offset: int = 0) -> List[User]:
        """List users in stable ID order, for maintenance scans."""
        result = await self.db.execute(
            select(User).order_by(User.id).limit(limit).offset(offset)
        )
        return list(result.scalars().all())
