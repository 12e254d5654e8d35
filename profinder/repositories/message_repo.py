"""
Message repository for database operations.
Handles per-pair queries, ordered inserts, and bulk updates.
"""
from typing import Dict, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from profinder.models.message import Message
from profinder.repositories.base import BaseRepository
from profinder.utils.helpers import pair_key, utc_now


class MessageRepository(BaseRepository[Message]):
    """Repository for message database operations."""

    def __init__(self, db: AsyncSession):
        """Initialize message repository."""
        super().__init__(Message, db)

    async def get_pair_messages(self, user_a: str, user_b: str) -> List[Message]:
        """
        Get every message of a pair in conversation order.

        Ordered by store-assigned timestamp; ties fall back to the per-pair
        sequence number (insertion order).

        Args:
            user_a: First user ID
            user_b: Second user ID

        Returns:
            Messages oldest first
        """
        result = await self.db.execute(
            select(Message)
            .where(Message.pair_key == pair_key(user_a, user_b))
            .order_by(Message.created_at.asc(), Message.sequence_number.asc())
        )
        return list(result.scalars().all())

    async def get_last_message(self, user_a: str, user_b: str) -> Optional[Message]:
        """Get the newest message of a pair, if any."""
        result = await self.db.execute(
            select(Message)
            .where(Message.pair_key == pair_key(user_a, user_b))
            .order_by(Message.created_at.desc(), Message.sequence_number.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def next_sequence_number(self, key: str) -> int:
        """Next per-pair sequence number."""
        result = await self.db.execute(
            select(func.max(Message.sequence_number)).where(Message.pair_key == key)
        )
        current = result.scalar()
        return (current or 0) + 1

    async def create_for_pair(self, sender_id: str, receiver_id: str, text: str) -> Message:
        """
        Insert a message with store-assigned timestamp and sequence number.

        Args:
            sender_id: Sender user ID
            receiver_id: Receiver user ID
            text: Message text (already validated)

        Returns:
            Created message
        """
        key = pair_key(sender_id, receiver_id)
        sequence_number = await self.next_sequence_number(key)

        return await self.create(
            sender_id=sender_id,
            receiver_id=receiver_id,
            pair_key=key,
            text=text,
            created_at=utc_now(),
            sequence_number=sequence_number,
            seen=False,
            reactions={},
            is_deleted=False,
            edited=False,
        )

    async def update_fields(
        self,
        message_id: str,
        reactions: Optional[Dict[str, str]] = None,
        **fields
    ) -> Optional[Message]:
        """
        Update a message in place.

        Reactions are merged key by key (one emoji per reactor, the new one
        wins); other fields are overwritten.

        Returns:
            Updated message or None if not found
        """
        message = await self.get(message_id, for_update=True)
        if message is None:
            return None

        if reactions:
            merged = dict(message.reactions or {})
            merged.update(reactions)
            message.reactions = merged

        for key, value in fields.items():
            setattr(message, key, value)

        await self.db.flush()
        return message

    async def mark_seen(self, message_ids: List[str]) -> int:
        """
        Flag messages as seen.

        Returns:
            Number of rows updated
        """
        if not message_ids:
            return 0

        result = await self.db.execute(
            update(Message)
            .where(Message.id.in_(message_ids), Message.seen.is_(False))
            .values(seen=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def delete_many(self, message_ids: List[str]) -> int:
        """
        Hard delete messages.

        Returns:
            Number of rows deleted
        """
        if not message_ids:
            return 0

        result = await self.db.execute(
            delete(Message)
            .where(Message.id.in_(message_ids))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def count_unread(self, receiver_id: str, sender_id: str) -> int:
        """Count unseen, non-deleted messages sent by sender_id to receiver_id."""
        result = await self.db.execute(
            select(func.count())
            .select_from(Message)
            .where(
                Message.pair_key == pair_key(receiver_id, sender_id),
                Message.receiver_id == receiver_id,
                Message.seen.is_(False),
                Message.is_deleted.is_(False),
            )
        )
        return result.scalar() or 0
