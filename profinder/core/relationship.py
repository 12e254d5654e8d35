"""
Relationship state resolution.

Derives how two users relate from their stored relationship sets. The state
is never persisted or cached: callers resolve it again on every read because
either record can change between two renders of a conversation.
"""
import enum
import logging
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)


class RelationshipState(str, enum.Enum):
    """How the current user ("me") relates to another user."""
    STRANGERS = "strangers"
    REQUEST_SENT_BY_ME = "request_sent_by_me"
    REQUEST_SENT_BY_THEM = "request_sent_by_them"
    CONNECTED = "connected"
    BLOCKED_BY_ME = "blocked_by_me"
    BLOCKED_BY_THEM = "blocked_by_them"
    MUTUALLY_BLOCKED = "mutually_blocked"


BLOCKED_STATES = frozenset({
    RelationshipState.BLOCKED_BY_ME,
    RelationshipState.BLOCKED_BY_THEM,
    RelationshipState.MUTUALLY_BLOCKED,
})

_MIRRORED = {
    RelationshipState.STRANGERS: RelationshipState.STRANGERS,
    RelationshipState.REQUEST_SENT_BY_ME: RelationshipState.REQUEST_SENT_BY_THEM,
    RelationshipState.REQUEST_SENT_BY_THEM: RelationshipState.REQUEST_SENT_BY_ME,
    RelationshipState.CONNECTED: RelationshipState.CONNECTED,
    RelationshipState.BLOCKED_BY_ME: RelationshipState.BLOCKED_BY_THEM,
    RelationshipState.BLOCKED_BY_THEM: RelationshipState.BLOCKED_BY_ME,
    RelationshipState.MUTUALLY_BLOCKED: RelationshipState.MUTUALLY_BLOCKED,
}


def _ids(record: Optional[Any], field: str) -> Iterable[str]:
    # Missing records (deleted users) resolve as empty sets
    if record is None:
        return ()
    return getattr(record, field, None) or ()


def resolve_state(
    me_id: str,
    me: Optional[Any],
    other_id: str,
    other: Optional[Any]
) -> RelationshipState:
    """
    Resolve the relationship state between two users.

    Blocks take precedence over everything else, then connections, then
    pending requests. First match wins.

    Args:
        me_id: ID of the viewing user
        me: Viewing user's record (anything with connections,
            pending_connections and blocked_users), or None if missing
        other_id: ID of the other user
        other: Other user's record, or None if missing

    Returns:
        RelationshipState from the viewing user's side

    Example:
        ```python
        state = resolve_state(me.id, me, other.id, other)
        if state in BLOCKED_STATES:
            visible = []
        ```
    """
    i_block = other_id in _ids(me, "blocked_users")
    they_block = me_id in _ids(other, "blocked_users")

    if i_block and they_block:
        return RelationshipState.MUTUALLY_BLOCKED
    if i_block:
        return RelationshipState.BLOCKED_BY_ME
    if they_block:
        return RelationshipState.BLOCKED_BY_THEM

    if other_id in _ids(me, "connections"):
        if other is not None and me_id not in _ids(other, "connections"):
            logger.warning(
                f"Asymmetric connection: {me_id} lists {other_id} but not the reverse"
            )
        return RelationshipState.CONNECTED

    if me_id in _ids(other, "pending_connections"):
        return RelationshipState.REQUEST_SENT_BY_ME
    if other_id in _ids(me, "pending_connections"):
        return RelationshipState.REQUEST_SENT_BY_THEM

    return RelationshipState.STRANGERS


def mirror(state: RelationshipState) -> RelationshipState:
    """Return the state as seen from the other user's side."""
    return _MIRRORED[state]


def is_blocked(state: RelationshipState) -> bool:
    """True if either party blocks the other."""
    return state in BLOCKED_STATES


def has_block_by_me(state: RelationshipState) -> bool:
    """True if the viewing user's own block is part of the state."""
    return state in (RelationshipState.BLOCKED_BY_ME, RelationshipState.MUTUALLY_BLOCKED)


def is_connection_asymmetric(me_id: str, me: Any, other_id: str, other: Optional[Any]) -> bool:
    """True if exactly one of the two users lists the other as a connection."""
    forward = other_id in _ids(me, "connections")
    backward = me_id in _ids(other, "connections")
    return forward != backward
