"""
Message model for direct messages between two users.
"""
from datetime import datetime
from typing import Dict

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Index,
    String,
    Text,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from profinder.models.base import Base, GeneratedIdMixin


class Message(Base, GeneratedIdMixin):
    """
    Message model - one chat entry between an ordered pair of users.

    The sender/receiver pair is fixed at creation. Soft-deleted messages keep
    their text in storage but are never rendered with it.
    """

    __tablename__ = "messages"

    # Participants
    sender_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        doc="User who sent the message"
    )

    receiver_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        doc="User who receives the message"
    )

    pair_key: Mapped[str] = mapped_column(
        String(511),
        nullable=False,
        doc="Canonical key of the unordered user pair"
    )

    # Content
    text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Message text"
    )

    # Store-assigned ordering
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Store-assigned timestamp"
    )

    sequence_number: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        doc="Per-pair insertion order, breaks timestamp ties"
    )

    # State
    seen: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        doc="Whether the receiver has seen the message"
    )

    reactions: Mapped[Dict[str, str]] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
        doc="Reactor user ID -> emoji (one reaction per reactor)"
    )

    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        doc="Soft delete flag"
    )

    edited: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        doc="Whether the message has been edited"
    )

    __table_args__ = (
        UniqueConstraint("pair_key", "sequence_number", name="uq_messages_pair_sequence"),
    )

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, sender_id={self.sender_id}, receiver_id={self.receiver_id})>"


# Pair queries are always ordered by timestamp then sequence
Index("idx_messages_pair_order", Message.pair_key, Message.created_at, Message.sequence_number)

# Unread lookups by receiver
Index("idx_messages_receiver_seen", Message.receiver_id, Message.seen)
