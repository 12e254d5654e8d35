"""
Pydantic schemas for message requests and responses.
Handles validation and rendering of direct messages.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from profinder.core.relationship import RelationshipState
from profinder.models.message import Message
from profinder.utils.helpers import to_iso_utc

DELETED_PLACEHOLDER = "message deleted"


# ============================================================================
# Request Schemas
# ============================================================================

class MessageSend(BaseModel):
    """Schema for sending a message."""

    text: str = Field(..., max_length=10000, description="Message text (trimmed server-side)")

    class Config:
        json_schema_extra = {
            "example": {
                "text": "Hello, how are you?"
            }
        }


class MessageEdit(BaseModel):
    """Schema for editing a message."""

    text: str = Field(..., max_length=10000, description="Replacement text")

    class Config:
        json_schema_extra = {
            "example": {
                "text": "Updated message text"
            }
        }


class ReactionSet(BaseModel):
    """Schema for reacting to a message."""

    emoji: str = Field(..., min_length=1, max_length=10, description="Emoji reaction")

    @field_validator("emoji")
    @classmethod
    def validate_emoji(cls, v: str) -> str:
        """Basic emoji validation."""
        if not v or len(v.strip()) == 0:
            raise ValueError("Emoji cannot be empty")
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "emoji": "👍"
            }
        }


# ============================================================================
# Response Schemas
# ============================================================================

class MessageResponse(BaseModel):
    """Rendered message. Soft-deleted messages never carry their text."""

    id: str
    sender_id: str
    receiver_id: str
    text: Optional[str] = None
    display_text: str
    timestamp: Optional[str] = None
    sequence_number: int
    seen: bool
    reactions: Dict[str, str] = Field(default_factory=dict)
    is_deleted: bool
    edited: bool

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        """Render a stored message."""
        text = None if message.is_deleted else message.text
        return cls(
            id=message.id,
            sender_id=message.sender_id,
            receiver_id=message.receiver_id,
            text=text,
            display_text=DELETED_PLACEHOLDER if message.is_deleted else message.text,
            timestamp=to_iso_utc(message.created_at),
            sequence_number=message.sequence_number,
            seen=message.seen,
            reactions=dict(message.reactions or {}),
            is_deleted=message.is_deleted,
            edited=message.edited,
        )


class ConversationSnapshot(BaseModel):
    """Point-in-time view of a conversation from one participant's side."""

    user_id: str = Field(..., description="Viewing user")
    other_user_id: str = Field(..., description="Other participant")
    state: RelationshipState
    can_send: bool
    can_react: bool
    messages: List[MessageResponse] = Field(default_factory=list)
    unread_count: int = Field(default=0, description="Unseen messages addressed to the viewer")


class ConversationSummary(BaseModel):
    """Conversation list entry."""

    other_user_id: str
    other_user_name: Optional[str] = None
    state: RelationshipState
    last_message: Optional[str] = None
    last_message_sender_id: Optional[str] = None
    unread_count: int = 0
