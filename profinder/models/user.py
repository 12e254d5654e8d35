"""
User model - profile and relationship record.

Identity is owned by the auth provider; the primary key is the provider's
user ID. Relationship sets are stored on the user row as JSON arrays, the way
the client-side document store kept them.
"""
from typing import List

from sqlalchemy import Boolean, Integer, String, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from profinder.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """
    User model - profile fields plus the three relationship sets.

    - connections: symmetric, mirrored on both users (eventually consistent)
    - pending_connections: IDs of users who sent THIS user a request
    - blocked_users: IDs this user has blocked (unilateral)
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        doc="User ID from the auth provider"
    )

    # Profile
    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        doc="Display name"
    )

    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        doc="Email address"
    )

    age: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        doc="Age in years"
    )

    bio: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        doc="Free-form biography"
    )

    location: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        doc="City or region"
    )

    area: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        doc="Area of expertise"
    )

    profession: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        doc="Profession"
    )

    profile_picture_url: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        doc="Externally hosted profile picture URL"
    )

    is_suspended: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        doc="Suspended by an administrator"
    )

    # Relationship sets
    connections: Mapped[List[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
        doc="IDs of connected users"
    )

    pending_connections: Mapped[List[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
        doc="IDs of users who sent this user a connection request"
    )

    blocked_users: Mapped[List[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
        doc="IDs of users this user has blocked"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name})>"


# Relationship set columns, in the order they are cascaded on account deletion
RELATIONSHIP_FIELDS = ("connections", "pending_connections", "blocked_users")

# Columns a user may edit on their own profile
PROFILE_FIELDS = (
    "name",
    "email",
    "age",
    "bio",
    "location",
    "area",
    "profession",
    "profile_picture_url",
)
