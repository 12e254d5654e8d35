"""
Service layer exports.
Provides business logic for the application.
"""
from profinder.services.admin_service import AdminService
from profinder.services.audit_service import AuditService
from profinder.services.connection_service import ConnectionService
from profinder.services.message_channel import MessageChannel, list_conversation_summaries
from profinder.services.user_service import UserService

__all__ = [
    "AdminService",
    "AuditService",
    "ConnectionService",
    "MessageChannel",
    "UserService",
    "list_conversation_summaries",
]
