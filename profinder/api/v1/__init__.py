"""
API v1 router exports.
Provides API endpoint routers.
"""
from profinder.api.v1 import admin, connections, messages, users

__all__ = [
    "admin",
    "connections",
    "messages",
    "users",
]
