"""
Message channel for one conversation seen from one participant.
Handles live snapshots, sending, editing, reactions and history clearing.
"""
import asyncio
import logging
from typing import AsyncIterator, List, Optional, Tuple, Union

from profinder.config import settings
from profinder.core.errors import ActionResult, TransportError
from profinder.core.relationship import (
    RelationshipState,
    has_block_by_me,
    is_blocked,
    resolve_state,
)
from profinder.models.message import Message
from profinder.models.user import User
from profinder.repositories.relationship_store import (
    BatchOperation,
    BatchOperationType,
    RelationshipStore,
)
from profinder.schemas.auth import ActorContext
from profinder.schemas.message import (
    ConversationSnapshot,
    ConversationSummary,
    MessageResponse,
)
from profinder.utils.helpers import pair_key

logger = logging.getLogger(__name__)


class MessageChannel:
    """
    Conversation between the actor and one other user.

    The relationship state is resolved again for every snapshot and every
    write, so a block or disconnect applied elsewhere takes effect on the
    next read.
    """

    def __init__(
        self,
        store: RelationshipStore,
        actor: ActorContext,
        other_id: str,
        allow_react_when_blocked: Optional[bool] = None,
        block_send_when_reported: Optional[bool] = None
    ):
        """
        Initialize message channel.

        Args:
            store: Relationship store
            actor: Viewing user
            other_id: Other participant
            allow_react_when_blocked: Overrides the setting of the same name
            block_send_when_reported: Overrides the setting of the same name
        """
        self.store = store
        self.actor = actor
        self.me_id = actor.user_id
        self.other_id = other_id
        self.pair_key = pair_key(self.me_id, other_id)
        self.allow_react_when_blocked = (
            settings.allow_react_when_blocked
            if allow_react_when_blocked is None
            else allow_react_when_blocked
        )
        self.block_send_when_reported = (
            settings.block_send_when_reported
            if block_send_when_reported is None
            else block_send_when_reported
        )

    async def _resolve(self) -> Tuple[Optional[User], Optional[User], RelationshipState]:
        users = await self.store.get_users([self.me_id, self.other_id])
        me = users.get(self.me_id)
        other = users.get(self.other_id)
        return me, other, resolve_state(self.me_id, me, self.other_id, other)

    async def _has_open_report(self) -> bool:
        if not self.block_send_when_reported:
            return False
        return bool(await self.store.find_reports(self.me_id, self.other_id))

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    async def current_snapshot(self) -> ConversationSnapshot:
        """
        Build one snapshot of the conversation.

        Blocked pairs get an empty message list. Otherwise every unseen
        message addressed to the actor is flagged seen in a single batch.
        """
        _, _, state = await self._resolve()
        blocked = is_blocked(state)

        messages: List[Message] = []
        if not blocked:
            messages = await self.store.query_messages(self.me_id, self.other_id)

        unseen = [
            message for message in messages
            if message.receiver_id == self.me_id and not message.seen
        ]
        if unseen:
            await self._mark_seen(unseen)

        can_send = (
            state == RelationshipState.CONNECTED
            and not await self._has_open_report()
        )

        return ConversationSnapshot(
            user_id=self.me_id,
            other_user_id=self.other_id,
            state=state,
            can_send=can_send,
            can_react=not blocked or self.allow_react_when_blocked,
            messages=[MessageResponse.from_message(message) for message in messages],
            unread_count=len(unseen),
        )

    async def snapshots(self) -> AsyncIterator[ConversationSnapshot]:
        """
        Stream snapshots for as long as the consumer iterates.

        Yields an initial snapshot, then one per batch of change
        notifications on the pair or either user record. Notifications that
        arrive while a snapshot is being built are folded into the next one.
        Subscriptions are released when the generator is closed or its task
        is cancelled.

        Example:
            ```python
            async for snapshot in channel.snapshots():
                await sio.emit("conversation_snapshot", snapshot.model_dump(mode="json"), to=sid)
            ```
        """
        changes: asyncio.Queue = asyncio.Queue()

        def on_change(topic: str) -> None:
            changes.put_nowait(topic)

        unsubscribers = [
            self.store.subscribe_messages(self.me_id, self.other_id, on_change),
            self.store.subscribe_user(self.me_id, on_change),
            self.store.subscribe_user(self.other_id, on_change),
        ]
        logger.debug(f"Snapshot stream opened for {self.me_id} on {self.pair_key}")

        try:
            yield await self.current_snapshot()
            while True:
                await changes.get()
                while not changes.empty():
                    changes.get_nowait()
                yield await self.current_snapshot()
        finally:
            for unsubscribe in unsubscribers:
                unsubscribe()
            logger.debug(f"Snapshot stream closed for {self.me_id} on {self.pair_key}")

    async def _mark_seen(self, messages: List[Message]) -> None:
        operations = [
            BatchOperation(type=BatchOperationType.MARK_SEEN, message_id=message.id)
            for message in messages
        ]
        try:
            await self.store.batch_write(operations)
        except TransportError as e:
            logger.warning(f"Could not mark {len(operations)} message(s) seen: {e}")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def send(self, text: str) -> ActionResult:
        """
        Send a message to the other participant.

        Every rejection happens before the store is written.
        """
        text = (text or "").strip()
        if not text:
            return ActionResult.precondition_failed("empty_text", "Message text cannot be empty")

        _, _, state = await self._resolve()

        if has_block_by_me(state):
            return ActionResult.precondition_failed(
                "blocked_by_me", "You have blocked this user"
            )
        if state == RelationshipState.BLOCKED_BY_THEM:
            return ActionResult.precondition_failed(
                "blocked_by_them", "You cannot message this user"
            )
        if await self._has_open_report():
            return ActionResult.precondition_failed(
                "reported", "You have reported this user"
            )
        if state != RelationshipState.CONNECTED:
            return ActionResult.precondition_failed(
                "not_connected", "You can only message your connections"
            )

        message = await self.store.create_message(self.me_id, self.other_id, text)
        logger.info(f"Message {message.id} sent {self.me_id} -> {self.other_id}")
        return ActionResult.success(data=MessageResponse.from_message(message))

    async def _load_own_message(self, message_id: str) -> Union[Message, ActionResult]:
        message = await self._load_pair_message(message_id)
        if isinstance(message, ActionResult):
            return message
        if message.sender_id != self.me_id:
            return ActionResult.precondition_failed(
                "not_sender", "Only the sender can change this message"
            )
        return message

    async def _load_pair_message(self, message_id: str) -> Union[Message, ActionResult]:
        message = await self.store.get_message(message_id)
        if message is None or message.pair_key != self.pair_key:
            return ActionResult.not_found("Message not found")
        return message

    async def edit(self, message_id: str, new_text: str) -> ActionResult:
        """Replace the text of one of the actor's messages."""
        message = await self._load_own_message(message_id)
        if isinstance(message, ActionResult):
            return message

        if message.is_deleted:
            return ActionResult.precondition_failed(
                "message_deleted", "Deleted messages cannot be edited"
            )

        new_text = (new_text or "").strip()
        if not new_text:
            return ActionResult.precondition_failed("empty_text", "Message text cannot be empty")

        updated = await self.store.update_message(message_id, text=new_text, edited=True)
        if updated is None:
            return ActionResult.not_found("Message not found")
        return ActionResult.success(data=MessageResponse.from_message(updated))

    async def soft_delete(self, message_id: str) -> ActionResult:
        """Hide one of the actor's messages; the record is kept."""
        message = await self._load_own_message(message_id)
        if isinstance(message, ActionResult):
            return message

        if message.is_deleted:
            return ActionResult.success(data=MessageResponse.from_message(message))

        updated = await self.store.update_message(message_id, is_deleted=True)
        if updated is None:
            return ActionResult.not_found("Message not found")
        return ActionResult.success(data=MessageResponse.from_message(updated))

    async def react(self, message_id: str, emoji: str) -> ActionResult:
        """Set the actor's reaction on a message, replacing any previous one."""
        emoji = (emoji or "").strip()
        if not emoji:
            return ActionResult.precondition_failed("empty_reaction", "Reaction cannot be empty")

        message = await self._load_pair_message(message_id)
        if isinstance(message, ActionResult):
            return message

        if message.is_deleted:
            return ActionResult.precondition_failed(
                "message_deleted", "Deleted messages cannot be reacted to"
            )

        if not self.allow_react_when_blocked:
            _, _, state = await self._resolve()
            if is_blocked(state):
                return ActionResult.precondition_failed(
                    state.value, "Reactions are disabled while blocked"
                )

        updated = await self.store.update_message(message_id, reactions={self.me_id: emoji})
        if updated is None:
            return ActionResult.not_found("Message not found")
        return ActionResult.success(data=MessageResponse.from_message(updated))

    async def clear_history(self) -> ActionResult:
        """Hard delete every message of the pair in one batch."""
        messages = await self.store.query_messages(self.me_id, self.other_id)
        if not messages:
            return ActionResult.success(data={"deleted": 0})

        deleted = await self.store.batch_write([
            BatchOperation(type=BatchOperationType.DELETE, message_id=message.id)
            for message in messages
        ])
        logger.info(f"Cleared {deleted} message(s) between {self.me_id} and {self.other_id}")
        return ActionResult.success(data={"deleted": deleted})


async def list_conversation_summaries(
    store: RelationshipStore,
    actor: ActorContext
) -> List[ConversationSummary]:
    """
    One entry per connection of the actor.

    Blocked pairs carry neither a preview nor an unread count.

    Args:
        store: Relationship store
        actor: Viewing user

    Returns:
        Summaries, most recently active first
    """
    me = await store.get_user(actor.user_id)
    if me is None:
        return []

    connection_ids = list(me.connections or [])
    others = await store.get_users(connection_ids)
    summaries = []
    activity = {}

    for other_id in connection_ids:
        other = others.get(other_id)
        state = resolve_state(actor.user_id, me, other_id, other)
        summary = ConversationSummary(
            other_user_id=other_id,
            other_user_name=other.name if other is not None else None,
            state=state,
        )

        if not is_blocked(state):
            last = await store.get_last_message(actor.user_id, other_id)
            if last is not None:
                summary.last_message = MessageResponse.from_message(last).display_text
                summary.last_message_sender_id = last.sender_id
                activity[other_id] = last.created_at
            summary.unread_count = await store.count_unread(actor.user_id, other_id)

        summaries.append(summary)

    # Conversations with messages first, newest activity on top
    summaries.sort(
        key=lambda s: (s.other_user_id in activity, activity.get(s.other_user_id) or 0),
        reverse=True,
    )
    return summaries
