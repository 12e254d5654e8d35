"""
Repository layer exports.
Provides database access layer for the application.
"""
from profinder.repositories.base import BaseRepository
from profinder.repositories.message_repo import MessageRepository
from profinder.repositories.report_repo import ReportRepository
from profinder.repositories.user_repo import UserRepository
from profinder.repositories.relationship_store import (
    BatchOperation,
    BatchOperationType,
    RelationshipStore,
    UserAlreadyExists,
)

__all__ = [
    "BaseRepository",
    "MessageRepository",
    "ReportRepository",
    "UserRepository",
    "BatchOperation",
    "BatchOperationType",
    "RelationshipStore",
    "UserAlreadyExists",
]
