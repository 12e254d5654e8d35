"""
Connection API routes.
Provides endpoints for requests, connections, blocks and reports.
"""
from typing import List

from fastapi import APIRouter, Depends, status

from profinder.api.v1.results import raise_for_result
from profinder.dependencies import get_current_user, get_store
from profinder.repositories.relationship_store import RelationshipStore
from profinder.schemas.auth import ActorContext
from profinder.schemas.connection import (
    ActionResponse,
    RelationshipStateResponse,
    ReportCreate,
    ReportResponse,
)
from profinder.schemas.user import UserWithStateResponse
from profinder.services.connection_service import ConnectionService
from profinder.services.user_service import UserService

router = APIRouter()


def _action_response(result) -> ActionResponse:
    raise_for_result(result)
    return ActionResponse(success=True, detail=result.detail, state=result.data)


@router.get(
    "/",
    response_model=List[UserWithStateResponse],
    summary="List connections"
)
async def list_connections(
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """List the caller's connections."""
    result = await UserService(store).list_connections(current_user)
    return raise_for_result(result).data


@router.get(
    "/pending",
    response_model=List[UserWithStateResponse],
    summary="List incoming requests"
)
async def list_pending(
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """List users who sent the caller a connection request."""
    result = await UserService(store).list_pending_requests(current_user)
    return raise_for_result(result).data


@router.get(
    "/{user_id}/state",
    response_model=RelationshipStateResponse,
    summary="Get relationship state"
)
async def get_state(
    user_id: str,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Resolve how the caller relates to another user."""
    result = raise_for_result(await ConnectionService(store).get_state(current_user, user_id))
    return RelationshipStateResponse(
        user_id=current_user.user_id,
        other_user_id=user_id,
        state=result.data,
    )


@router.post(
    "/{user_id}/request",
    response_model=ActionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send connection request"
)
async def send_request(
    user_id: str,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Send a connection request. Only valid between strangers."""
    return _action_response(await ConnectionService(store).send_request(current_user, user_id))


@router.delete(
    "/{user_id}/request",
    response_model=ActionResponse,
    summary="Cancel connection request"
)
async def cancel_request(
    user_id: str,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Withdraw a sent request. Succeeds when there is nothing to withdraw."""
    return _action_response(await ConnectionService(store).cancel_request(current_user, user_id))


@router.post(
    "/{user_id}/accept",
    response_model=ActionResponse,
    summary="Accept connection request"
)
async def accept_request(
    user_id: str,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Accept a request and connect both users."""
    return _action_response(await ConnectionService(store).accept_request(current_user, user_id))


@router.post(
    "/{user_id}/reject",
    response_model=ActionResponse,
    summary="Reject connection request"
)
async def reject_request(
    user_id: str,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Decline a request. Succeeds when there is nothing to decline."""
    return _action_response(await ConnectionService(store).reject_request(current_user, user_id))


@router.delete(
    "/{user_id}",
    response_model=ActionResponse,
    summary="Disconnect"
)
async def disconnect(
    user_id: str,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Remove a connection from both users."""
    return _action_response(await ConnectionService(store).disconnect(current_user, user_id))


@router.post(
    "/{user_id}/block",
    response_model=ActionResponse,
    summary="Block user"
)
async def block_user(
    user_id: str,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Block a user. Their conversation is hidden on both sides."""
    return _action_response(await ConnectionService(store).block(current_user, user_id))


@router.delete(
    "/{user_id}/block",
    response_model=ActionResponse,
    summary="Unblock user"
)
async def unblock_user(
    user_id: str,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Lift a block. Succeeds when the user is not blocked."""
    return _action_response(await ConnectionService(store).unblock(current_user, user_id))


@router.post(
    "/{user_id}/report",
    response_model=ReportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report user"
)
async def report_user(
    user_id: str,
    report_data: ReportCreate,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """File a report against a user for admin review."""
    result = await ConnectionService(store).report(current_user, user_id, report_data.reason)
    return ReportResponse.from_report(raise_for_result(result).data)


@router.delete(
    "/{user_id}/report",
    response_model=ActionResponse,
    summary="Withdraw report"
)
async def unreport_user(
    user_id: str,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Withdraw the caller's reports against a user."""
    result = raise_for_result(await ConnectionService(store).unreport(current_user, user_id))
    return ActionResponse(success=True, detail=result.detail, data={"deleted": result.data})
