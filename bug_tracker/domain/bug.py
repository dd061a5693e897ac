"""
Bug entity model.

Field constraints, the creation defaults and the status/resolution rules that
every create and update goes through.

Invariants:
- resolved_at is set iff status == resolved; resolved_by follows resolved_at.
- reported_by and created_at never change after creation.
- Comments are append-only and kept in insertion order.
- A failed validation leaves the bug untouched: updates are computed in full
  before any attribute is assigned.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    constr,
    field_validator,
    model_validator,
)

from ..errors import ValidationError
from ..policy.transitions import TransitionTable
from .enums import BugStatus, Category, Priority, Severity
from .primitives import Attachment, Environment, Identity, as_utc

TITLE_MAX = 200
DESCRIPTION_MAX = 2000
STEPS_MAX = 1000
BEHAVIOR_MAX = 500
RESOLUTION_MAX = 1000
TAG_MAX = 30
COMMENT_MAX = 1000
PROJECT_MAX = 200

Tag = constr(min_length=1, max_length=TAG_MAX)


def _dedupe_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    """Tags are an ordered set: keep the first occurrence of each."""
    if tags is None:
        return None
    seen = set()
    ordered = []
    for tag in tags:
        if tag not in seen:
            seen.add(tag)
            ordered.append(tag)
    return ordered


class BugCreate(BaseModel):
    """Schema for reporting a new bug.

    reported_by, status and resolution fields are owned by the core and are
    dropped if a caller sends them.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    title: constr(min_length=1, max_length=TITLE_MAX)
    description: constr(min_length=1, max_length=DESCRIPTION_MAX)
    steps_to_reproduce: Optional[constr(max_length=STEPS_MAX)] = None
    expected_behavior: Optional[constr(max_length=BEHAVIOR_MAX)] = None
    actual_behavior: Optional[constr(max_length=BEHAVIOR_MAX)] = None

    severity: Severity
    priority: Priority
    category: Category
    project: constr(min_length=1, max_length=PROJECT_MAX)

    assigned_to: Optional[constr(min_length=1, max_length=128)] = None
    environment: Optional[Environment] = None
    tags: List[Tag] = Field(default_factory=list)
    attachments: List[Attachment] = Field(default_factory=list)

    estimated_time: Optional[float] = Field(None, ge=0, description="Hours")
    actual_time: Optional[float] = Field(None, ge=0, description="Hours")

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, tags):
        return _dedupe_tags(tags)


# Fields a patch may set to null
NULLABLE_UPDATE_FIELDS = frozenset(
    {
        "steps_to_reproduce",
        "expected_behavior",
        "actual_behavior",
        "assigned_to",
        "environment",
        "resolution",
        "resolved_at",
        "resolved_by",
        "estimated_time",
        "actual_time",
    }
)


class BugUpdate(BaseModel):
    """Partial update. Only fields present in the payload are applied.

    Unknown keys (reported_by, id, created_at, comments, ...) are ignored.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    title: Optional[constr(min_length=1, max_length=TITLE_MAX)] = None
    description: Optional[constr(min_length=1, max_length=DESCRIPTION_MAX)] = None
    steps_to_reproduce: Optional[constr(max_length=STEPS_MAX)] = None
    expected_behavior: Optional[constr(max_length=BEHAVIOR_MAX)] = None
    actual_behavior: Optional[constr(max_length=BEHAVIOR_MAX)] = None

    severity: Optional[Severity] = None
    priority: Optional[Priority] = None
    category: Optional[Category] = None
    project: Optional[constr(min_length=1, max_length=PROJECT_MAX)] = None
    status: Optional[BugStatus] = None

    assigned_to: Optional[constr(min_length=1, max_length=128)] = None
    environment: Optional[Environment] = None
    tags: Optional[List[Tag]] = None
    attachments: Optional[List[Attachment]] = None

    resolution: Optional[constr(max_length=RESOLUTION_MAX)] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[constr(min_length=1, max_length=128)] = None

    estimated_time: Optional[float] = Field(None, ge=0)
    actual_time: Optional[float] = Field(None, ge=0)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, tags):
        return _dedupe_tags(tags)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "BugUpdate":
        """An explicit null is only meaningful for optional fields."""
        for name in sorted(self.model_fields_set - NULLABLE_UPDATE_FIELDS):
            if getattr(self, name) is None:
                raise ValueError(f"'{name}' cannot be null")
        return self


class CommentCreate(BaseModel):
    """Schema for appending a comment."""

    content: str


def validate_create(data: Union[BugCreate, Dict[str, Any]]) -> BugCreate:
    """Validate creation input, raising the core ValidationError on failure."""
    if isinstance(data, BugCreate):
        return data
    try:
        return BugCreate.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e


def validate_update(data: Union[BugUpdate, Dict[str, Any]]) -> BugUpdate:
    """Validate a patch, raising the core ValidationError on failure."""
    if isinstance(data, BugUpdate):
        return data
    try:
        return BugUpdate.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e


def validate_comment(content: Optional[str]) -> str:
    """Comments are 1-1000 characters after trimming."""
    body = (content or "").strip()
    if not body:
        raise ValidationError("Comment content is required", code="COMMENT_EMPTY")
    if len(body) > COMMENT_MAX:
        raise ValidationError(
            f"Comment cannot exceed {COMMENT_MAX} characters",
            code="COMMENT_TOO_LONG",
        )
    return body


def _plain(value: Any) -> Any:
    """Reduce enums and nested models to storable primitives."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def new_bug_fields(data: BugCreate, author: Identity, now: datetime) -> Dict[str, Any]:
    """Column values for a freshly reported bug."""
    return {
        "title": data.title,
        "description": data.description,
        "steps_to_reproduce": data.steps_to_reproduce,
        "expected_behavior": data.expected_behavior,
        "actual_behavior": data.actual_behavior,
        "severity": data.severity.value,
        "priority": data.priority.value,
        "category": data.category.value,
        "project": data.project,
        "status": BugStatus.OPEN.value,
        "reported_by": author.id,
        "assigned_to": data.assigned_to,
        "environment": _plain(data.environment),
        "tags": list(data.tags),
        "attachments": _plain(data.attachments),
        "resolution": None,
        "resolved_at": None,
        "resolved_by": None,
        "estimated_time": data.estimated_time,
        "actual_time": data.actual_time,
        "created_at": now,
        "updated_at": now,
    }


def _same(current: Any, new: Any) -> bool:
    if isinstance(current, datetime) or isinstance(new, datetime):
        return as_utc(current) == as_utc(new)
    return current == new


def plan_update(
    bug: Any,
    patch: BugUpdate,
    actor: Identity,
    now: datetime,
    transitions: Optional[TransitionTable] = None,
) -> Dict[str, Any]:
    """Compute the field changes a patch causes, without touching the bug.

    Resolution rules:
    - Entering ``resolved`` stamps resolved_at=now and resolved_by=actor.
      Explicit resolved_at/resolved_by in the patch replace the stamp only
      when the actor is privileged.
    - While staying ``resolved`` only a privileged actor may rewrite them.
    - Any other status clears both, whatever the patch says.
    """
    requested = patch.model_fields_set
    changes: Dict[str, Any] = {
        name: _plain(getattr(patch, name))
        for name in requested
        if name not in ("resolved_at", "resolved_by", "status")
    }

    previous = BugStatus(bug.status)
    target = patch.status if "status" in requested else previous
    (transitions or TransitionTable()).check(previous, target)
    if target != previous:
        changes["status"] = target.value

    if target == BugStatus.RESOLVED:
        if previous != BugStatus.RESOLVED or bug.resolved_at is None:
            changes["resolved_at"] = now
            changes["resolved_by"] = actor.id
        if actor.is_privileged:
            if "resolved_at" in requested and patch.resolved_at is not None:
                changes["resolved_at"] = as_utc(patch.resolved_at)
            if "resolved_by" in requested and patch.resolved_by is not None:
                changes["resolved_by"] = patch.resolved_by
    else:
        changes["resolved_at"] = None
        changes["resolved_by"] = None

    return {
        name: value
        for name, value in changes.items()
        if not _same(getattr(bug, name), value)
    }


def apply_update(
    bug: Any,
    patch: Union[BugUpdate, Dict[str, Any]],
    actor: Identity,
    now: datetime,
    transitions: Optional[TransitionTable] = None,
) -> Dict[str, Any]:
    """Validate and apply a patch; returns the fields that changed.

    updated_at is stamped on every call, even when nothing else changed.
    """
    patch = validate_update(patch)
    changes = plan_update(bug, patch, actor, now, transitions)
    for name, value in changes.items():
        setattr(bug, name, value)
    bug.updated_at = now
    return changes


def append_comment(bug: Any, content: Optional[str], author: Identity, now: datetime):
    """Append a comment to ``bug`` and return it."""
    body = validate_comment(content)
    comment = bug.new_comment(author_id=author.id, content=body, created_at=now)
    bug.updated_at = now
    return comment


def age_in_days(created_at: datetime, now: datetime) -> int:
    """Whole days since the bug was reported."""
    return (as_utc(now) - as_utc(created_at)) // timedelta(days=1)


def time_to_resolution(
    created_at: datetime, resolved_at: Optional[datetime]
) -> Optional[int]:
    """Whole hours from report to resolution, or None while unresolved."""
    if resolved_at is None:
        return None
    return (as_utc(resolved_at) - as_utc(created_at)) // timedelta(hours=1)
