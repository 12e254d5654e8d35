"""
Pydantic schemas for request/response validation.
"""
from profinder.schemas.admin import AdminUserList, BulkAction, BulkActionResult, BulkUserAction
from profinder.schemas.auth import ActorContext
from profinder.schemas.connection import (
    ActionErrorResponse,
    ActionResponse,
    AuditIssue,
    AuditReport,
    RelationshipStateResponse,
    ReportCreate,
    ReportResponse,
)
from profinder.schemas.message import (
    ConversationSnapshot,
    ConversationSummary,
    MessageEdit,
    MessageResponse,
    MessageSend,
    ReactionSet,
)
from profinder.schemas.user import (
    BrowseResponse,
    OwnProfileResponse,
    ProfileCreate,
    ProfileUpdate,
    UserResponse,
    UserWithStateResponse,
)

__all__ = [
    "AdminUserList",
    "BulkAction",
    "BulkActionResult",
    "BulkUserAction",
    "ActorContext",
    "ActionErrorResponse",
    "ActionResponse",
    "AuditIssue",
    "AuditReport",
    "RelationshipStateResponse",
    "ReportCreate",
    "ReportResponse",
    "ConversationSnapshot",
    "ConversationSummary",
    "MessageEdit",
    "MessageResponse",
    "MessageSend",
    "ReactionSet",
    "BrowseResponse",
    "OwnProfileResponse",
    "ProfileCreate",
    "ProfileUpdate",
    "UserResponse",
    "UserWithStateResponse",
]
