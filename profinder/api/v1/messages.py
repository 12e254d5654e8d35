"""
Message API routes.
Provides endpoints for conversation snapshots, sending, editing, and reactions.

Message-level routes live under /item/{message_id}; the other user's ID is
taken from the stored message, so the channel still rejects messages from
other conversations.
"""
from typing import List

from fastapi import APIRouter, Depends, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from profinder.api.v1.results import raise_for_result
from profinder.config import settings
from profinder.core.errors import ActionResult
from profinder.dependencies import get_current_user, get_store
from profinder.repositories.relationship_store import RelationshipStore
from profinder.schemas.auth import ActorContext
from profinder.schemas.connection import ActionResponse
from profinder.schemas.message import (
    ConversationSnapshot,
    ConversationSummary,
    MessageEdit,
    MessageResponse,
    MessageSend,
    ReactionSet,
)
from profinder.services.message_channel import MessageChannel, list_conversation_summaries

router = APIRouter()
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


async def _channel_for_message(
    store: RelationshipStore,
    current_user: ActorContext,
    message_id: str
):
    """Open the channel the message belongs to, from the caller's side."""
    message = await store.get_message(message_id)
    if message is None or current_user.user_id not in (message.sender_id, message.receiver_id):
        raise_for_result(ActionResult.not_found("Message not found"))

    other_id = (
        message.receiver_id
        if message.sender_id == current_user.user_id
        else message.sender_id
    )
    return MessageChannel(store, current_user, other_id)


@router.get(
    "/",
    response_model=List[ConversationSummary],
    summary="List conversations"
)
async def list_conversations(
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """One entry per connection with the last message and unread count."""
    return await list_conversation_summaries(store, current_user)


@router.get(
    "/{user_id}",
    response_model=ConversationSnapshot,
    summary="Get conversation"
)
async def get_conversation(
    user_id: str,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """
    Get the conversation with a user.

    Blocked conversations are returned without messages. Unseen messages
    addressed to the caller are marked seen.
    """
    return await MessageChannel(store, current_user, user_id).current_snapshot()


@router.post(
    "/{user_id}",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message"
)
@limiter.limit(settings.send_message_rate_limit)
async def send_message(
    request: Request,
    user_id: str,
    message_data: MessageSend,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """
    Send a message to a connection.

    - **text**: Message text, trimmed; must not be empty
    """
    result = await MessageChannel(store, current_user, user_id).send(message_data.text)
    return raise_for_result(result).data


@router.delete(
    "/{user_id}/history",
    response_model=ActionResponse,
    summary="Clear conversation history"
)
async def clear_history(
    user_id: str,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Permanently delete every message with a user, for both sides."""
    result = await MessageChannel(store, current_user, user_id).clear_history()
    raise_for_result(result)
    return ActionResponse(success=True, data=result.data)


@router.put(
    "/item/{message_id}",
    response_model=MessageResponse,
    summary="Edit a message"
)
async def edit_message(
    message_id: str,
    message_data: MessageEdit,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Edit one of the caller's messages."""
    channel = await _channel_for_message(store, current_user, message_id)
    result = await channel.edit(message_id, message_data.text)
    return raise_for_result(result).data


@router.delete(
    "/item/{message_id}",
    response_model=MessageResponse,
    summary="Delete a message"
)
async def delete_message(
    message_id: str,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Soft delete one of the caller's messages."""
    channel = await _channel_for_message(store, current_user, message_id)
    result = await channel.soft_delete(message_id)
    return raise_for_result(result).data


@router.put(
    "/item/{message_id}/reaction",
    response_model=MessageResponse,
    summary="React to a message"
)
async def react_to_message(
    message_id: str,
    reaction_data: ReactionSet,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Set the caller's reaction, replacing any previous one."""
    channel = await _channel_for_message(store, current_user, message_id)
    result = await channel.react(message_id, reaction_data.emoji)
    return raise_for_result(result).data
