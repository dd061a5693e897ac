"""
Database package for the bug tracker.
"""

from .audit_models import AuditLogModel
from .audit_service import AuditService
from .base import Base, get_db, get_engine, get_session_local, init_database
from .models import BugModel, BugTagModel, CommentModel, UserModel

__all__ = [
    "Base",
    "get_db",
    "get_engine",
    "get_session_local",
    "init_database",
    "AuditLogModel",
    "AuditService",
    "BugModel",
    "BugTagModel",
    "CommentModel",
    "UserModel",
]
