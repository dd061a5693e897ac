"""
Canonical enums for bug records and identities.

These define the allowed values for classification, lifecycle and roles.
Wire values are the lowercase strings.
"""

from enum import Enum


class Severity(str, Enum):
    """How badly the defect hurts."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Priority(str, Enum):
    """How soon the defect should be addressed."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Category(str, Enum):
    """Area of the product the defect belongs to."""

    UI = "ui"
    BACKEND = "backend"
    DATABASE = "database"
    PERFORMANCE = "performance"
    SECURITY = "security"
    FEATURE = "feature"
    OTHER = "other"


class BugStatus(str, Enum):
    """Lifecycle status of a bug."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    REOPENED = "reopened"


class Role(str, Enum):
    """Identity roles."""

    DEVELOPER = "developer"
    TESTER = "tester"
    ADMIN = "admin"
    PROJECT_MANAGER = "project_manager"


# Roles granted elevated update/delete/listing rights
PRIVILEGED_ROLES = frozenset({Role.ADMIN, Role.PROJECT_MANAGER})


class AuditAction(str, Enum):
    """Kinds of audit log entries."""

    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    DELETED = "deleted"
    COMMENTED = "commented"
    ROLE_CHANGED = "role_changed"
    ACTIVATION_CHANGED = "activation_changed"
