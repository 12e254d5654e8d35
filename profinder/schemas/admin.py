"""
Pydantic schemas for admin user management.
"""
import enum
from typing import Dict, List

from pydantic import BaseModel, Field, field_validator

from profinder.schemas.user import OwnProfileResponse


class BulkAction(str, enum.Enum):
    """Actions an admin can apply to several users at once."""
    SUSPEND = "suspend"
    UNSUSPEND = "unsuspend"
    DELETE = "delete"


class AdminUserList(BaseModel):
    """One page of the admin user table."""

    users: List[OwnProfileResponse]
    total: int = Field(..., description="Users matching the search across all pages")


class BulkUserAction(BaseModel):
    """Request body for a bulk action."""

    action: BulkAction
    user_ids: List[str] = Field(..., min_length=1, max_length=100)

    @field_validator("user_ids")
    @classmethod
    def dedupe_ids(cls, v: List[str]) -> List[str]:
        """Drop blanks and repeats, keeping the given order."""
        ids = list(dict.fromkeys(uid.strip() for uid in v if uid.strip()))
        if not ids:
            raise ValueError("At least one user ID is required")
        return ids

    class Config:
        json_schema_extra = {
            "example": {
                "action": "suspend",
                "user_ids": ["u1", "u2"]
            }
        }


class BulkActionResult(BaseModel):
    """Per-user outcome of a bulk action."""

    action: BulkAction
    succeeded: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict, description="User ID -> failure reason")
