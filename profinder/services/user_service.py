"""
User service for profile management and discovery.
Handles profile creation, updates, browsing, and connection lists.
"""
import logging
from typing import List, Optional

from profinder.core.errors import ActionResult, ErrorKind
from profinder.core.relationship import resolve_state
from profinder.models.user import PROFILE_FIELDS, User
from profinder.repositories.relationship_store import RelationshipStore, UserAlreadyExists
from profinder.schemas.auth import ActorContext
from profinder.schemas.user import (
    BrowseResponse,
    OwnProfileResponse,
    ProfileCreate,
    ProfileUpdate,
    UserWithStateResponse,
)

logger = logging.getLogger(__name__)


class UserService:
    """Service for profile and discovery business logic."""

    def __init__(self, store: RelationshipStore):
        """Initialize user service."""
        self.store = store

    async def create_profile(self, actor: ActorContext, data: ProfileCreate) -> ActionResult:
        """
        Create the profile record for the authenticated user.

        Args:
            actor: Authenticated user
            data: Profile fields

        Returns:
            ActionResult carrying OwnProfileResponse
        """
        fields = data.model_dump(exclude_none=True)
        try:
            user = await self.store.create_user(actor.user_id, **fields)
        except UserAlreadyExists:
            return ActionResult.precondition_failed("profile_exists", "Profile already exists")

        logger.info(f"Created profile {actor.user_id}")
        return ActionResult.success(data=OwnProfileResponse.from_user(user))

    async def get_own_profile(self, actor: ActorContext) -> ActionResult:
        """Get the caller's own profile with relationship sets."""
        user = await self.store.get_user(actor.user_id)
        if user is None:
            return ActionResult.not_found("Your profile was not found", reason="profile_not_found")
        return ActionResult.success(data=OwnProfileResponse.from_user(user))

    async def update_profile(self, actor: ActorContext, data: ProfileUpdate) -> ActionResult:
        """
        Update profile fields. Relationship sets are never touched here.
        """
        result = await self.update_fields(actor.user_id, data)
        if result.kind == ErrorKind.NOT_FOUND:
            return ActionResult.not_found("Your profile was not found", reason="profile_not_found")
        return result

    async def update_fields(self, user_id: str, data: ProfileUpdate) -> ActionResult:
        """Write the set PROFILE_FIELDS of data to a user (owner or admin)."""
        fields = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if key in PROFILE_FIELDS
        }
        if fields:
            user = await self.store.update_user(user_id, **fields)
        else:
            user = await self.store.get_user(user_id)

        if user is None:
            return ActionResult.not_found("User not found")
        return ActionResult.success(data=OwnProfileResponse.from_user(user))

    async def get_profile(self, actor: ActorContext, user_id: str) -> ActionResult:
        """
        Get another user's profile with the relationship state.

        Suspended users are hidden from everyone but themselves.
        """
        if user_id == actor.user_id:
            return await self.get_own_profile(actor)

        users = await self.store.get_users([actor.user_id, user_id])
        other = users.get(user_id)
        if other is None or other.is_suspended:
            return ActionResult.not_found("User not found")

        state = resolve_state(actor.user_id, users.get(actor.user_id), user_id, other)
        return ActionResult.success(data=UserWithStateResponse.from_user_and_state(other, state))

    async def browse(
        self,
        actor: ActorContext,
        query: Optional[str] = None,
        area: Optional[str] = None,
        profession: Optional[str] = None,
        location: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> BrowseResponse:
        """
        Discover other users.

        Users who block the caller are still listed, with the
        blocked_by_them state.

        Args:
            actor: Searching user
            query: Case-insensitive text over name, area and profession
            area: Exact area filter
            profession: Exact profession filter
            location: Exact location filter
            limit: Maximum results
            offset: Pagination offset

        Returns:
            BrowseResponse
        """
        criteria = {
            "query": query,
            "area": area,
            "profession": profession,
            "location": location,
            "exclude_id": actor.user_id,
        }
        me = await self.store.get_user(actor.user_id)
        users = await self.store.search_users(**criteria, limit=limit, offset=offset)
        total = await self.store.count_users(**criteria)

        results = [
            UserWithStateResponse.from_user_and_state(
                user, resolve_state(actor.user_id, me, user.id, user)
            )
            for user in users
        ]
        return BrowseResponse(users=results, total=total)

    async def _with_states(self, actor: ActorContext, me: User, ids: List[str]) -> List[UserWithStateResponse]:
        users = await self.store.get_users(ids)
        # Missing records are skipped; the audit reports them as dangling
        return [
            UserWithStateResponse.from_user_and_state(
                users[uid], resolve_state(actor.user_id, me, uid, users[uid])
            )
            for uid in ids
            if uid in users
        ]

    async def list_connections(self, actor: ActorContext) -> ActionResult:
        """List the caller's connections."""
        me = await self.store.get_user(actor.user_id)
        if me is None:
            return ActionResult.not_found("Your profile was not found", reason="profile_not_found")
        return ActionResult.success(
            data=await self._with_states(actor, me, list(me.connections or []))
        )

    async def list_pending_requests(self, actor: ActorContext) -> ActionResult:
        """List users who sent the caller a connection request."""
        me = await self.store.get_user(actor.user_id)
        if me is None:
            return ActionResult.not_found("Your profile was not found", reason="profile_not_found")
        return ActionResult.success(
            data=await self._with_states(actor, me, list(me.pending_connections or []))
        )

    async def set_suspended(self, user_id: str, suspended: bool) -> ActionResult:
        """Suspend or reinstate a user (admin)."""
        user = await self.store.update_user(user_id, is_suspended=suspended)
        if user is None:
            return ActionResult.not_found("User not found")

        logger.info(f"User {user_id} suspended={suspended}")
        return ActionResult.success(data=OwnProfileResponse.from_user(user))
