"""
User API routes.
Provides endpoints for profile management and discovery.
"""
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, status

from profinder.api.v1.results import raise_for_result
from profinder.dependencies import get_current_user, get_pagination_params, get_store
from profinder.repositories.relationship_store import RelationshipStore
from profinder.schemas.auth import ActorContext
from profinder.schemas.connection import ActionResponse
from profinder.schemas.user import (
    BrowseResponse,
    OwnProfileResponse,
    ProfileCreate,
    ProfileUpdate,
    UserWithStateResponse,
)
from profinder.services.connection_service import ConnectionService
from profinder.services.user_service import UserService

router = APIRouter()


@router.post(
    "/",
    response_model=OwnProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create profile",
    description="Create the profile for the authenticated user."
)
async def create_profile(
    profile_data: ProfileCreate,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """
    Create the caller's profile.

    - **name**: Display name (required)
    - **area** / **profession** / **location**: Discovery fields
    """
    result = await UserService(store).create_profile(current_user, profile_data)
    return raise_for_result(result).data


@router.get(
    "/me",
    response_model=OwnProfileResponse,
    summary="Get current user profile"
)
async def get_me(
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Get the caller's profile, including relationship sets."""
    result = await UserService(store).get_own_profile(current_user)
    return raise_for_result(result).data


@router.patch(
    "/me",
    response_model=OwnProfileResponse,
    summary="Update current user profile"
)
async def update_me(
    profile_data: ProfileUpdate,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Update profile fields. Omitted fields are left unchanged."""
    result = await UserService(store).update_profile(current_user, profile_data)
    return raise_for_result(result).data


@router.delete(
    "/me",
    response_model=ActionResponse,
    summary="Delete account",
    description="Delete the caller's account and remove it from every other user's relationship sets."
)
async def delete_me(
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Delete the caller's account."""
    result = await ConnectionService(store).delete_account(current_user)
    raise_for_result(result)
    return ActionResponse(success=True, detail="Account deleted", data=result.data)


@router.get(
    "/browse",
    response_model=BrowseResponse,
    summary="Browse users"
)
async def browse_users(
    q: Optional[str] = Query(None, description="Search over name, area and profession"),
    area: Optional[str] = Query(None),
    profession: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    pagination: dict = Depends(get_pagination_params),
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """
    Discover other users.

    Each result carries the relationship state from the caller's side.
    """
    return await UserService(store).browse(
        current_user,
        query=q,
        area=area,
        profession=profession,
        location=location,
        limit=pagination["limit"],
        offset=pagination["offset"],
    )


@router.get(
    "/{user_id}",
    response_model=Union[UserWithStateResponse, OwnProfileResponse],
    summary="Get user profile"
)
async def get_user(
    user_id: str,
    current_user: ActorContext = Depends(get_current_user),
    store: RelationshipStore = Depends(get_store)
):
    """Get another user's profile with the relationship state (own profile for the caller's ID)."""
    result = await UserService(store).get_profile(current_user, user_id)
    return raise_for_result(result).data
