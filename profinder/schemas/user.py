"""
Pydantic schemas for profile requests and responses.
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from profinder.core.relationship import RelationshipState
from profinder.models.user import User
from profinder.utils.helpers import to_iso_utc


# ============================================================================
# Request Schemas
# ============================================================================

class ProfileBase(BaseModel):
    """Editable profile fields."""

    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    age: Optional[int] = Field(None, ge=0, le=150)
    bio: Optional[str] = Field(None, max_length=5000)
    location: Optional[str] = Field(None, max_length=255)
    area: Optional[str] = Field(None, max_length=255)
    profession: Optional[str] = Field(None, max_length=255)
    profile_picture_url: Optional[str] = Field(None, max_length=500)


class ProfileCreate(ProfileBase):
    """Schema for creating the caller's profile at registration."""

    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Ensure name is not whitespace only."""
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Jane Doe",
                "email": "jane@example.com",
                "age": 31,
                "location": "Berlin",
                "area": "Software",
                "profession": "Engineer"
            }
        }


class ProfileUpdate(ProfileBase):
    """Schema for updating the caller's profile. Omitted fields are kept."""
    pass


# ============================================================================
# Response Schemas
# ============================================================================

class UserResponse(BaseModel):
    """Public profile."""

    id: str
    name: Optional[str] = None
    age: Optional[int] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    area: Optional[str] = None
    profession: Optional[str] = None
    profile_picture_url: Optional[str] = None
    connection_count: int = 0
    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            age=user.age,
            bio=user.bio,
            location=user.location,
            area=user.area,
            profession=user.profession,
            profile_picture_url=user.profile_picture_url,
            connection_count=len(user.connections or []),
            created_at=to_iso_utc(user.created_at),
        )


class OwnProfileResponse(UserResponse):
    """The caller's own profile, including relationship sets."""

    email: Optional[str] = None
    is_suspended: bool = False
    connections: List[str] = Field(default_factory=list)
    pending_connections: List[str] = Field(default_factory=list)
    blocked_users: List[str] = Field(default_factory=list)

    @classmethod
    def from_user(cls, user: User) -> "OwnProfileResponse":
        base = UserResponse.from_user(user).model_dump()
        return cls(
            **base,
            email=user.email,
            is_suspended=user.is_suspended,
            connections=list(user.connections or []),
            pending_connections=list(user.pending_connections or []),
            blocked_users=list(user.blocked_users or []),
        )


class UserWithStateResponse(UserResponse):
    """Another user's profile with the relationship state from the caller's side."""

    state: RelationshipState

    @classmethod
    def from_user_and_state(cls, user: User, state: RelationshipState) -> "UserWithStateResponse":
        return cls(**UserResponse.from_user(user).model_dump(), state=state)


class BrowseResponse(BaseModel):
    """Discovery results."""

    users: List[UserWithStateResponse]
    total: int = Field(..., description="Matches across all pages")
