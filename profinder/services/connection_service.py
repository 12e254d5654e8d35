"""
Connection service containing the relationship action handlers.
Handles requests, acceptance, disconnects, blocks, reports and account deletion.
"""
import logging
from typing import List, Optional, Tuple, Union

from profinder.core.errors import ActionResult, ErrorKind, TransportError
from profinder.core.relationship import (
    RelationshipState,
    has_block_by_me,
    resolve_state,
)
from profinder.models.user import RELATIONSHIP_FIELDS, User
from profinder.repositories.relationship_store import RelationshipStore
from profinder.schemas.auth import ActorContext

logger = logging.getLogger(__name__)

PairLoad = Tuple[User, Optional[User], RelationshipState]


class ConnectionService:
    """
    Service for pairwise relationship actions.

    Every handler reads both records, checks its precondition against the
    resolved state, applies set-level writes and returns an ActionResult.
    Two-record writes are not atomic: if the second write fails after the
    first one landed, the handler reports a partial write instead of
    pretending nothing happened.
    """

    def __init__(self, store: RelationshipStore):
        """
        Initialize connection service.

        Args:
            store: Relationship store
        """
        self.store = store

    async def _load_pair(
        self,
        actor: ActorContext,
        other_id: str,
        require_other: bool = True
    ) -> Union[PairLoad, ActionResult]:
        """
        Load both records and resolve the state.

        Returns:
            (me, other, state) or a failed ActionResult
        """
        if other_id == actor.user_id:
            return ActionResult.precondition_failed(
                "self_action", "You cannot perform this action on yourself"
            )

        users = await self.store.get_users([actor.user_id, other_id])
        me = users.get(actor.user_id)
        other = users.get(other_id)

        if me is None:
            return ActionResult.not_found("Your profile was not found", reason="profile_not_found")
        if other is None and require_other:
            return ActionResult.not_found("User not found")

        return me, other, resolve_state(actor.user_id, me, other_id, other)

    async def get_state(self, actor: ActorContext, other_id: str) -> ActionResult:
        """Resolve the relationship state with another user."""
        loaded = await self._load_pair(actor, other_id)
        if isinstance(loaded, ActionResult):
            return loaded
        _, _, state = loaded
        return ActionResult.success(data=state)

    async def send_request(self, actor: ActorContext, other_id: str) -> ActionResult:
        """
        Send a connection request.

        Only valid between strangers. The request is stored on the receiver's
        pending set.
        """
        loaded = await self._load_pair(actor, other_id)
        if isinstance(loaded, ActionResult):
            return loaded
        _, _, state = loaded

        if state != RelationshipState.STRANGERS:
            return ActionResult.precondition_failed(
                state.value, f"Cannot send a request while {state.value}"
            )

        updated = await self.store.update_user(
            other_id, add={"pending_connections": [actor.user_id]}
        )
        if updated is None:
            return ActionResult.not_found("User not found")

        logger.info(f"Connection request {actor.user_id} -> {other_id}")
        return ActionResult.success(data=RelationshipState.REQUEST_SENT_BY_ME)

    async def cancel_request(self, actor: ActorContext, other_id: str) -> ActionResult:
        """Withdraw a pending request. No-op when there is none."""
        loaded = await self._load_pair(actor, other_id, require_other=False)
        if isinstance(loaded, ActionResult):
            return loaded
        _, other, state = loaded

        if state != RelationshipState.REQUEST_SENT_BY_ME or other is None:
            return ActionResult.success(data=state, detail="No pending request")

        await self.store.update_user(
            other_id, remove={"pending_connections": [actor.user_id]}
        )
        return ActionResult.success(data=RelationshipState.STRANGERS)

    async def accept_request(self, actor: ActorContext, other_id: str) -> ActionResult:
        """Accept a request from other_id and connect both users."""
        loaded = await self._load_pair(actor, other_id)
        if isinstance(loaded, ActionResult):
            return loaded
        _, _, state = loaded

        if state != RelationshipState.REQUEST_SENT_BY_THEM:
            return ActionResult.precondition_failed(
                state.value, f"No request to accept while {state.value}"
            )

        await self.store.update_user(
            actor.user_id,
            add={"connections": [other_id]},
            remove={"pending_connections": [other_id]},
        )

        failure = await self._second_write(
            other_id,
            add={"connections": [actor.user_id]},
            remove={"pending_connections": [actor.user_id]},
        )
        if failure is not None:
            return failure

        logger.info(f"Connection accepted: {actor.user_id} <-> {other_id}")
        return ActionResult.success(data=RelationshipState.CONNECTED)

    async def reject_request(self, actor: ActorContext, other_id: str) -> ActionResult:
        """Decline a request from other_id. No-op when there is none."""
        loaded = await self._load_pair(actor, other_id, require_other=False)
        if isinstance(loaded, ActionResult):
            return loaded
        me, _, state = loaded

        if other_id not in (me.pending_connections or []):
            return ActionResult.success(data=state, detail="No pending request")

        await self.store.update_user(
            actor.user_id, remove={"pending_connections": [other_id]}
        )
        return ActionResult.success(data=RelationshipState.STRANGERS)

    async def disconnect(self, actor: ActorContext, other_id: str) -> ActionResult:
        """Remove an existing connection from both sides."""
        loaded = await self._load_pair(actor, other_id, require_other=False)
        if isinstance(loaded, ActionResult):
            return loaded
        _, other, state = loaded

        if state != RelationshipState.CONNECTED:
            return ActionResult.precondition_failed(
                state.value, f"Not connected ({state.value})"
            )

        await self.store.update_user(actor.user_id, remove={"connections": [other_id]})

        if other is not None:
            failure = await self._second_write(
                other_id, remove={"connections": [actor.user_id]}
            )
            if failure is not None:
                return failure

        logger.info(f"Disconnected: {actor.user_id} <-> {other_id}")
        return ActionResult.success(data=RelationshipState.STRANGERS)

    async def block(self, actor: ActorContext, other_id: str) -> ActionResult:
        """
        Block another user.

        Connections and pending requests are left in place; the block only
        takes precedence over them. Messages are hidden, never mutated.
        """
        loaded = await self._load_pair(actor, other_id)
        if isinstance(loaded, ActionResult):
            return loaded
        _, _, state = loaded

        if has_block_by_me(state):
            return ActionResult.precondition_failed("already_blocked", "User is already blocked")

        await self.store.update_user(actor.user_id, add={"blocked_users": [other_id]})
        new_state = (
            RelationshipState.MUTUALLY_BLOCKED
            if state == RelationshipState.BLOCKED_BY_THEM
            else RelationshipState.BLOCKED_BY_ME
        )
        logger.info(f"User {actor.user_id} blocked {other_id}")
        return ActionResult.success(data=new_state)

    async def unblock(self, actor: ActorContext, other_id: str) -> ActionResult:
        """Lift a block. No-op when the user is not blocked."""
        loaded = await self._load_pair(actor, other_id, require_other=False)
        if isinstance(loaded, ActionResult):
            return loaded
        me, other, state = loaded

        if not has_block_by_me(state):
            return ActionResult.success(data=state, detail="User is not blocked")

        await self.store.update_user(actor.user_id, remove={"blocked_users": [other_id]})
        me.blocked_users = [uid for uid in (me.blocked_users or []) if uid != other_id]
        return ActionResult.success(data=resolve_state(actor.user_id, me, other_id, other))

    async def report(self, actor: ActorContext, other_id: str, reason: str) -> ActionResult:
        """File a report against another user."""
        loaded = await self._load_pair(actor, other_id)
        if isinstance(loaded, ActionResult):
            return loaded

        reason = (reason or "").strip()
        if not reason:
            return ActionResult.precondition_failed("empty_reason", "A reason is required")

        report = await self.store.create_report(actor.user_id, other_id, reason)
        logger.info(f"User {actor.user_id} reported {other_id}")
        return ActionResult.success(data=report)

    async def unreport(self, actor: ActorContext, other_id: str) -> ActionResult:
        """Withdraw every report filed against other_id. No-op when none exist."""
        if other_id == actor.user_id:
            return ActionResult.precondition_failed(
                "self_action", "You cannot perform this action on yourself"
            )

        deleted = await self.store.delete_reports(actor.user_id, other_id)
        if not deleted:
            return ActionResult.success(data=0, detail="No report to withdraw")
        return ActionResult.success(data=deleted)

    async def has_reported(self, actor: ActorContext, other_id: str) -> bool:
        """Whether the actor has an open report against other_id."""
        return bool(await self.store.find_reports(actor.user_id, other_id))

    async def delete_account(self, actor: ActorContext) -> ActionResult:
        """
        Delete the actor's account and scrub every reference to it.

        See remove_user for the cascade.
        """
        result = await self.remove_user(actor.user_id)
        if result.kind == ErrorKind.NOT_FOUND:
            return ActionResult.not_found("Your profile was not found", reason="profile_not_found")
        return result

    async def remove_user(self, user_id: str) -> ActionResult:
        """
        Delete a user record and scrub every reference to it.

        The user record goes first. Each referencing user is then cleaned in
        its own write; users that could not be cleaned are returned as
        dangling so the caller (or a later audit) can retry. Used for
        self-service deletion and by administrators.
        """
        deleted = await self.store.delete_user(user_id)
        if not deleted:
            return ActionResult.not_found("User not found")

        referencing = await self.store.find_users_referencing(user_id)
        scrub = {field: [user_id] for field in RELATIONSHIP_FIELDS}
        dangling: List[str] = []

        for user in referencing:
            try:
                await self.store.update_user(user.id, remove=scrub)
            except TransportError as e:
                logger.error(f"Failed to remove {user_id} from {user.id}: {e}")
                dangling.append(user.id)

        if dangling:
            return ActionResult.partial_write(
                f"Account deleted but {len(dangling)} user(s) still reference it",
                data={"dangling": dangling},
            )

        logger.info(f"Deleted account {user_id}, cleaned {len(referencing)} reference(s)")
        return ActionResult.success(data={"cleaned": len(referencing)})

    async def _second_write(self, user_id: str, add=None, remove=None) -> Optional[ActionResult]:
        """
        Apply the mirrored half of a two-record action.

        Returns:
            None on success, a partial-write ActionResult otherwise
        """
        try:
            updated = await self.store.update_user(user_id, add=add, remove=remove)
        except TransportError as e:
            logger.error(f"Mirrored write to {user_id} failed: {e}")
            return ActionResult.partial_write(
                "The action was only partially applied. Please try again.",
                data={"user_id": user_id},
            )

        if updated is None:
            logger.warning(f"Mirrored write skipped: user {user_id} no longer exists")
            return ActionResult.partial_write(
                "The other user no longer exists.",
                data={"user_id": user_id},
            )
        return None
