"""
Relationship store - the document-store boundary of the application.

Every public call runs in its own session and transaction, so each call is
atomic for the single record it touches and nothing more. Multi-record
consistency (mirrored connections, account deletion cascade) is the caller's
concern. Committed writes publish change notifications on the broker; a
notification that cannot be delivered is logged and the write still stands.
"""
import enum
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from profinder.core.errors import TransportError
from profinder.core.pubsub import ChangeBroker, change_broker, pair_topic, user_topic
from profinder.models.message import Message
from profinder.models.report import Report
from profinder.models.user import RELATIONSHIP_FIELDS, User
from profinder.repositories.message_repo import MessageRepository
from profinder.repositories.report_repo import ReportRepository
from profinder.repositories.user_repo import UserRepository
from profinder.utils.helpers import pair_key

logger = logging.getLogger(__name__)

# Inserts tried per message before a sequence conflict is reported
SEQUENCE_ATTEMPTS = 5


class BatchOperationType(str, enum.Enum):
    """Kinds of message write allowed in a batch."""
    MARK_SEEN = "mark_seen"
    DELETE = "delete"


class BatchOperation(BaseModel):
    """One message write inside a batch_write call."""

    type: BatchOperationType
    message_id: str = Field(..., min_length=1)


class UserAlreadyExists(Exception):
    """Raised by create_user when the ID is taken."""
    pass


class RelationshipStore:
    """
    Store facade over users, messages and reports.

    Database outages surface as TransportError; missing records are
    reported as None/False, never raised.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        broker: Optional[ChangeBroker] = None
    ):
        """
        Initialize the store.

        Args:
            session_factory: Factory producing AsyncSession instances
            broker: Change broker for notifications (defaults to the global one)
        """
        self.session_factory = session_factory
        self.broker = broker or change_broker

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """Open a session, commit on success, roll back on error."""
        try:
            async with self.session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
        except (OperationalError, InterfaceError) as e:
            logger.error(f"Database unreachable: {e}")
            raise TransportError("Relationship store unreachable", original=e) from e

    async def _publish(self, topic: str) -> None:
        """Notify listeners of a committed write; a broker outage is logged, not raised."""
        try:
            await self.broker.publish(topic)
        except TransportError as e:
            logger.warning(f"Change notification for {topic} dropped: {e}")

    async def _notify_users(self, *user_ids: str) -> None:
        for user_id in user_ids:
            await self._publish(user_topic(user_id))

    async def _notify_pair(self, user_a: str, user_b: str) -> None:
        await self._publish(pair_topic(pair_key(user_a, user_b)))

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, user_id: str) -> Optional[User]:
        """Get a user record, or None if it does not exist."""
        async with self._transaction() as session:
            return await UserRepository(session).get(user_id)

    async def get_users(self, user_ids: List[str]) -> Dict[str, User]:
        """Get several user records keyed by ID; missing IDs are absent."""
        async with self._transaction() as session:
            users = await UserRepository(session).get_many(user_ids)
        return {user.id: user for user in users}

    async def create_user(self, user_id: str, **fields) -> User:
        """
        Create a user record.

        Raises:
            UserAlreadyExists: If a record with this ID exists
        """
        try:
            async with self._transaction() as session:
                repo = UserRepository(session)
                if await repo.get(user_id) is not None:
                    raise UserAlreadyExists(user_id)
                for field in RELATIONSHIP_FIELDS:
                    fields[field] = list(fields.get(field) or [])
                user = await repo.create(id=user_id, **fields)
        except IntegrityError as e:
            raise UserAlreadyExists(user_id) from e

        await self._notify_users(user_id)
        return user

    async def update_user(
        self,
        user_id: str,
        add: Optional[Dict[str, Iterable[str]]] = None,
        remove: Optional[Dict[str, Iterable[str]]] = None,
        **fields
    ) -> Optional[User]:
        """
        Update one user record atomically.

        Args:
            user_id: User ID
            add: Relationship field -> IDs to add (set semantics)
            remove: Relationship field -> IDs to remove
            **fields: Plain column values

        Returns:
            Updated user, or None if not found
        """
        async with self._transaction() as session:
            user = await UserRepository(session).apply_set_changes(
                user_id, add=add, remove=remove, **fields
            )

        if user is not None:
            await self._notify_users(user_id)
        return user

    async def delete_user(self, user_id: str) -> bool:
        """Delete a user record. Returns False if it did not exist."""
        async with self._transaction() as session:
            deleted = await UserRepository(session).delete(user_id)

        if deleted:
            await self._notify_users(user_id)
        return deleted

    async def find_users_referencing(self, user_id: str) -> List[User]:
        """Users whose relationship sets mention user_id."""
        async with self._transaction() as session:
            return await UserRepository(session).find_referencing(user_id)

    async def search_users(self, **criteria) -> List[User]:
        """Discovery search; see UserRepository.search_users."""
        async with self._transaction() as session:
            return await UserRepository(session).search_users(**criteria)

    async def list_users(self, limit: int = 500, offset: int = 0) -> List[User]:
        """List users in ID order."""
        async with self._transaction() as session:
            return await UserRepository(session).list_all(limit=limit, offset=offset)

    async def count_users(self, **criteria) -> int:
        """Total matches of a search; see UserRepository.count_matching."""
        async with self._transaction() as session:
            return await UserRepository(session).count_matching(**criteria)

    async def list_users_sorted(self, **options) -> List[User]:
        """Admin listing; see UserRepository.list_sorted."""
        async with self._transaction() as session:
            return await UserRepository(session).list_sorted(**options)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def query_messages(self, user_a: str, user_b: str) -> List[Message]:
        """All messages of a pair, ordered by timestamp then insertion."""
        async with self._transaction() as session:
            return await MessageRepository(session).get_pair_messages(user_a, user_b)

    async def get_last_message(self, user_a: str, user_b: str) -> Optional[Message]:
        """Newest message of a pair."""
        async with self._transaction() as session:
            return await MessageRepository(session).get_last_message(user_a, user_b)

    async def count_unread(self, receiver_id: str, sender_id: str) -> int:
        """Unseen messages from sender_id to receiver_id."""
        async with self._transaction() as session:
            return await MessageRepository(session).count_unread(receiver_id, sender_id)

    def subscribe_messages(
        self,
        user_a: str,
        user_b: str,
        callback: Callable[[str], None]
    ) -> Callable[[], None]:
        """
        Listen for message changes of a pair.

        Returns:
            Unsubscribe callable
        """
        return self.broker.subscribe(pair_topic(pair_key(user_a, user_b)), callback)

    def subscribe_user(self, user_id: str, callback: Callable[[str], None]) -> Callable[[], None]:
        """
        Listen for changes of a user record.

        Returns:
            Unsubscribe callable
        """
        return self.broker.subscribe(user_topic(user_id), callback)

    async def get_message(self, message_id: str) -> Optional[Message]:
        """Get a message by ID."""
        async with self._transaction() as session:
            return await MessageRepository(session).get(message_id)

    async def create_message(self, sender_id: str, receiver_id: str, text: str) -> Message:
        """
        Create a message; timestamp and sequence are assigned here.

        Concurrent sends in one pair can pick the same sequence number; the
        loser of the unique constraint retries in a fresh transaction.

        Returns:
            Created message

        Raises:
            TransportError: If no sequence number could be claimed
        """
        for attempt in range(1, SEQUENCE_ATTEMPTS + 1):
            try:
                async with self._transaction() as session:
                    message = await MessageRepository(session).create_for_pair(
                        sender_id, receiver_id, text
                    )
                break
            except IntegrityError as e:
                logger.info(
                    f"Sequence conflict for {pair_key(sender_id, receiver_id)} "
                    f"(attempt {attempt}/{SEQUENCE_ATTEMPTS})"
                )
                if attempt == SEQUENCE_ATTEMPTS:
                    raise TransportError("Could not order the message, please retry", original=e) from e

        await self._notify_pair(sender_id, receiver_id)
        return message

    async def update_message(
        self,
        message_id: str,
        reactions: Optional[Dict[str, str]] = None,
        **fields
    ) -> Optional[Message]:
        """
        Update one message atomically.

        Args:
            message_id: Message ID
            reactions: Reactor ID -> emoji entries to upsert
            **fields: Plain column values (text, edited, is_deleted, seen)

        Returns:
            Updated message, or None if not found
        """
        async with self._transaction() as session:
            message = await MessageRepository(session).update_fields(
                message_id, reactions=reactions, **fields
            )

        if message is not None:
            await self._notify_pair(message.sender_id, message.receiver_id)
        return message

    async def delete_message(self, message_id: str) -> bool:
        """Hard delete one message."""
        async with self._transaction() as session:
            repo = MessageRepository(session)
            message = await repo.get(message_id)
            if message is None:
                return False
            await repo.delete(message_id)

        await self._notify_pair(message.sender_id, message.receiver_id)
        return True

    async def batch_write(self, operations: List[BatchOperation]) -> int:
        """
        Apply several message writes in one transaction.

        Returns:
            Number of messages affected
        """
        if not operations:
            return 0

        seen_ids = [op.message_id for op in operations if op.type == BatchOperationType.MARK_SEEN]
        delete_ids = [op.message_id for op in operations if op.type == BatchOperationType.DELETE]

        async with self._transaction() as session:
            repo = MessageRepository(session)
            touched = await repo.get_many(seen_ids + delete_ids)
            affected = await repo.mark_seen(seen_ids)
            affected += await repo.delete_many(delete_ids)

        for key in sorted({message.pair_key for message in touched}):
            await self._publish(pair_topic(key))

        return affected

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def create_report(self, reporter_id: str, reported_user_id: str, reason: str) -> Report:
        """File a report."""
        async with self._transaction() as session:
            return await ReportRepository(session).create(
                reporter_id=reporter_id,
                reported_user_id=reported_user_id,
                reason=reason,
            )

    async def find_reports(self, reporter_id: str, reported_user_id: str) -> List[Report]:
        """Reports filed by reporter_id against reported_user_id."""
        async with self._transaction() as session:
            return await ReportRepository(session).find(reporter_id, reported_user_id)

    async def delete_reports(self, reporter_id: str, reported_user_id: str) -> int:
        """Delete every report filed by reporter_id against reported_user_id."""
        async with self._transaction() as session:
            return await ReportRepository(session).delete_matching(reporter_id, reported_user_id)

    async def list_reports(self, limit: int = 50, offset: int = 0) -> List[Report]:
        """Reports newest first."""
        async with self._transaction() as session:
            return await ReportRepository(session).list_recent(limit=limit, offset=offset)

    async def delete_report(self, report_id: str) -> bool:
        """Delete one report by ID."""
        async with self._transaction() as session:
            return await ReportRepository(session).delete(report_id)
