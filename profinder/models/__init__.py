"""
SQLAlchemy models for the ProFinder server.

All models must be imported here for Alembic auto-generation to work.
"""

# Import Base first
from profinder.models.base import Base, TimestampMixin, GeneratedIdMixin

# Import all models
from profinder.models.user import User
from profinder.models.message import Message
from profinder.models.report import Report

# Export all models
__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "GeneratedIdMixin",
    # Users
    "User",
    # Messages
    "Message",
    # Reports
    "Report",
]
