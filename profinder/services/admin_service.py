"""
Admin user management.
Lists, edits, suspends and deletes users on behalf of an administrator.
"""
import logging
from typing import Optional

from profinder.core.errors import ActionResult
from profinder.repositories.relationship_store import RelationshipStore
from profinder.schemas.admin import AdminUserList, BulkAction, BulkActionResult
from profinder.schemas.user import OwnProfileResponse, ProfileUpdate
from profinder.services.connection_service import ConnectionService
from profinder.services.user_service import UserService

logger = logging.getLogger(__name__)


class AdminService:
    """
    Service for the admin user table.

    Edits go through the same profile field whitelist as self-service
    updates, and deletion runs the same reference cascade as account
    deletion.
    """

    def __init__(self, store: RelationshipStore):
        self.store = store
        self.users = UserService(store)
        self.connections = ConnectionService(store)

    async def list_users(
        self,
        query: Optional[str] = None,
        sort_by: str = "created_at",
        descending: bool = True,
        limit: int = 20,
        offset: int = 0
    ) -> AdminUserList:
        """
        List every user, suspended ones included.

        Raises:
            ValueError: If sort_by is not a sortable column
        """
        users = await self.store.list_users_sorted(
            query=query,
            sort_by=sort_by,
            descending=descending,
            limit=limit,
            offset=offset,
        )
        total = await self.store.count_users(query=query, include_suspended=True)
        return AdminUserList(
            users=[OwnProfileResponse.from_user(user) for user in users],
            total=total,
        )

    async def update_user(self, user_id: str, data: ProfileUpdate) -> ActionResult:
        """Edit a user's profile fields."""
        result = await self.users.update_fields(user_id, data)
        if result.ok:
            logger.info(f"Admin updated profile {user_id}")
        return result

    async def delete_user(self, user_id: str) -> ActionResult:
        """Delete a user and scrub references to them."""
        result = await self.connections.remove_user(user_id)
        if result.ok:
            logger.info(f"Admin deleted user {user_id}")
        return result

    async def bulk_action(self, action: BulkAction, user_ids: list) -> BulkActionResult:
        """
        Apply one action to several users.

        Each user is handled independently; a failure for one user does not
        stop the others.
        """
        outcome = BulkActionResult(action=action)

        for user_id in user_ids:
            if action == BulkAction.DELETE:
                result = await self.delete_user(user_id)
            else:
                result = await self.users.set_suspended(user_id, action == BulkAction.SUSPEND)

            if result.ok:
                outcome.succeeded.append(user_id)
            else:
                outcome.failed[user_id] = result.reason or "failed"

        logger.info(
            f"Bulk {action.value}: {len(outcome.succeeded)} succeeded, "
            f"{len(outcome.failed)} failed"
        )
        return outcome
