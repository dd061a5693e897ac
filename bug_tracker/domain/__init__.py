"""
Bug tracker domain model.

- Bug: the central issue record (content, classification, lifecycle, people,
  resolution metadata, time tracking, tags, attachments, comments)
- Comment: append-only note owned by exactly one Bug
- Identity: the authenticated principal (id, role, active flag)
- BugQuery / Page: the listing contract

Lifecycle:
    open <-> in_progress <-> resolved <-> closed <-> reopened (any to any)
    resolved_at / resolved_by are present exactly while status == resolved
"""

from .bug import (
    BugCreate,
    BugUpdate,
    CommentCreate,
    age_in_days,
    append_comment,
    apply_update,
    new_bug_fields,
    plan_update,
    time_to_resolution,
    validate_comment,
    validate_create,
    validate_update,
)
from .enums import (
    PRIVILEGED_ROLES,
    AuditAction,
    BugStatus,
    Category,
    Priority,
    Role,
    Severity,
)
from .primitives import (
    Attachment,
    Environment,
    Identity,
    as_utc,
    generate_ulid,
    utc_now,
)
from .query import (
    BugFilter,
    BugQuery,
    BugSort,
    Page,
    SortDirection,
    SortField,
    total_pages_for,
    validate_query,
)

__all__ = [
    # Enums
    "AuditAction",
    "BugStatus",
    "Category",
    "PRIVILEGED_ROLES",
    "Priority",
    "Role",
    "Severity",
    # Primitives
    "Attachment",
    "Environment",
    "Identity",
    "as_utc",
    "generate_ulid",
    "utc_now",
    # Bug model
    "BugCreate",
    "BugUpdate",
    "CommentCreate",
    "age_in_days",
    "append_comment",
    "apply_update",
    "new_bug_fields",
    "plan_update",
    "time_to_resolution",
    "validate_comment",
    "validate_create",
    "validate_update",
    # Query
    "BugFilter",
    "BugQuery",
    "BugSort",
    "Page",
    "SortDirection",
    "SortField",
    "total_pages_for",
    "validate_query",
]
