"""
Dependency injection for FastAPI routes.
Provides reusable dependencies for authentication and the relationship store.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from profinder.core.database import AsyncSessionLocal
from profinder.core.pubsub import change_broker
from profinder.core.security import actor_from_token, extract_token_from_header
from profinder.repositories.relationship_store import RelationshipStore
from profinder.schemas.auth import ActorContext

_store = RelationshipStore(AsyncSessionLocal, change_broker)


def get_store() -> RelationshipStore:
    """
    Dependency returning the relationship store.

    Tests override this to point at their own database and broker.
    """
    return _store


async def get_current_user(
    authorization: Optional[str] = Header(None)
) -> ActorContext:
    """
    Dependency to get the current authenticated user.

    The token's ``sub`` claim is the user ID and ``role`` is carried for
    admin checks. No database lookup happens here: a user without a profile
    can still authenticate in order to create one.

    Raises:
        HTTPException: 401 if token is missing or invalid

    Example:
        ```python
        @router.get("/me")
        async def me(current_user: ActorContext = Depends(get_current_user)):
            return {"user_id": current_user.user_id}
        ```
    """
    token = extract_token_from_header(authorization)
    return actor_from_token(token)


async def get_admin_user(
    current_user: ActorContext = Depends(get_current_user)
) -> ActorContext:
    """
    Dependency to verify the current user is an admin.

    Raises:
        HTTPException: 403 if user is not an admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )

    return current_user


def get_pagination_params(limit: int = 20, offset: int = 0) -> dict:
    """
    Dependency for offset pagination parameters.

    Limits are clamped to 1..100 and offsets to >= 0.
    """
    if limit > 100:
        limit = 100
    elif limit < 1:
        limit = 1

    return {
        "limit": limit,
        "offset": max(offset, 0),
    }
