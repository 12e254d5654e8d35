"""
Authenticated caller context.
"""
from typing import Optional

from pydantic import BaseModel, Field


class ActorContext(BaseModel):
    """
    The user on whose behalf a handler runs.

    Passed explicitly into every service call instead of being looked up
    from ambient state.
    """

    user_id: str = Field(..., min_length=1, description="Authenticated user ID")
    role: Optional[str] = Field(None, description="Role claim from the token")

    @property
    def is_admin(self) -> bool:
        return (self.role or "").upper() == "ADMIN"
