"""
SQLAlchemy models for the bug tracker.

Bugs own their tags and comments outright: both live in child tables that are
deleted with the bug. Attachments and environment are small metadata blobs and
are stored as JSON.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..domain.bug import age_in_days, time_to_resolution
from ..domain.enums import Role
from ..domain.primitives import Identity, as_utc, utc_now
from .base import Base


def _iso(value: Optional[datetime]) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


# These mirror bug_tracker/domain/enums.py
severity_enum = Enum("low", "medium", "high", "critical", name="bug_severity")

priority_enum = Enum("low", "medium", "high", "urgent", name="bug_priority")

category_enum = Enum(
    "ui",
    "backend",
    "database",
    "performance",
    "security",
    "feature",
    "other",
    name="bug_category",
)

status_enum = Enum(
    "open", "in_progress", "resolved", "closed", "reopened", name="bug_status"
)

role_enum = Enum("developer", "tester", "admin", "project_manager", name="user_role")


class UserModel(Base):
    """SQLAlchemy model for identities."""

    __tablename__ = "users"

    id = Column(String(128), primary_key=True)
    username = Column(String(30), nullable=False, unique=True, index=True)
    email = Column(String(254), nullable=False, unique=True, index=True)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    role = Column(role_enum, nullable=False, default="developer", index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=func.now(), index=True
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=func.now(),
        onupdate=func.now(),
    )

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    def to_identity(self) -> Identity:
        """The principal this user acts as."""
        return Identity(id=self.id, role=Role(self.role), is_active=self.is_active)

    def display(self) -> Dict[str, Any]:
        """Attributes shown next to authored content."""
        return {
            "id": self.id,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class BugTagModel(Base):
    """One tag of a bug; position keeps the tag list ordered."""

    __tablename__ = "bug_tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bug_id = Column(
        String(128), ForeignKey("bugs.id", ondelete="CASCADE"), nullable=False
    )
    position = Column(Integer, nullable=False)
    value = Column(String(30), nullable=False)

    __table_args__ = (Index("ix_bug_tags_bug_position", "bug_id", "position"),)


class CommentModel(Base):
    """SQLAlchemy model for bug comments.

    The autoincrement key doubles as the insertion order.
    """

    __tablename__ = "bug_comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bug_id = Column(
        String(128),
        ForeignKey("bugs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id = Column(String(128), ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    bug = relationship("BugModel", back_populates="comments")
    author = relationship("UserModel", lazy="joined")

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary, resolving the author's display attributes."""
        return {
            "id": self.id,
            "bug_id": self.bug_id,
            "author_id": self.author_id,
            "author": self.author.display() if self.author else None,
            "content": self.content,
            "created_at": _iso(self.created_at),
        }


class BugModel(Base):
    """SQLAlchemy model for bugs."""

    __tablename__ = "bugs"

    # Object identity (ULID string)
    id = Column(String(128), primary_key=True)

    # Content
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    steps_to_reproduce = Column(Text, nullable=True)
    expected_behavior = Column(String(500), nullable=True)
    actual_behavior = Column(String(500), nullable=True)

    # Classification
    severity = Column(severity_enum, nullable=False, index=True)
    priority = Column(priority_enum, nullable=False, index=True)
    category = Column(category_enum, nullable=False, default="other")
    project = Column(String(200), nullable=False, index=True)
    environment = Column(JSON, nullable=True)

    # Lifecycle
    status = Column(status_enum, nullable=False, default="open", index=True)

    # People
    reported_by = Column(
        String(128), ForeignKey("users.id"), nullable=False, index=True
    )
    assigned_to = Column(String(128), ForeignKey("users.id"), nullable=True, index=True)

    # Resolution metadata
    resolution = Column(Text, nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolved_by = Column(String(128), ForeignKey("users.id"), nullable=True)

    # Time tracking (hours)
    estimated_time = Column(Float, nullable=True)
    actual_time = Column(Float, nullable=True)

    attachments = Column(JSON, nullable=False, default=list)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    tag_rows = relationship(
        "BugTagModel",
        order_by="BugTagModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    comments = relationship(
        "CommentModel",
        back_populates="bug",
        order_by="CommentModel.id",
        cascade="all, delete-orphan",
    )
    reporter = relationship("UserModel", foreign_keys=[reported_by])
    assignee = relationship("UserModel", foreign_keys=[assigned_to])
    resolver = relationship("UserModel", foreign_keys=[resolved_by])

    # Indexes
    __table_args__ = (
        Index("ix_bugs_created_at", "created_at"),
        Index("ix_bugs_status_severity", "status", "severity"),
    )

    @property
    def tags(self) -> List[str]:
        return [row.value for row in self.tag_rows]

    @tags.setter
    def tags(self, values: List[str]) -> None:
        self.tag_rows = [
            BugTagModel(position=position, value=value)
            for position, value in enumerate(values or [])
        ]

    def new_comment(
        self, author_id: str, content: str, created_at: datetime
    ) -> CommentModel:
        """Append a comment to this bug."""
        comment = CommentModel(author_id=author_id, content=content, created_at=created_at)
        self.comments.append(comment)
        return comment

    def to_dict(
        self, now: Optional[datetime] = None, include_comments: bool = True
    ) -> Dict[str, Any]:
        """Convert model to dictionary, including the derived fields."""
        now = now or utc_now()
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "steps_to_reproduce": self.steps_to_reproduce,
            "expected_behavior": self.expected_behavior,
            "actual_behavior": self.actual_behavior,
            "severity": self.severity,
            "priority": self.priority,
            "category": self.category,
            "project": self.project,
            "environment": self.environment,
            "status": self.status,
            "reported_by": self.reported_by,
            "reporter": self.reporter.display() if self.reporter else None,
            "assigned_to": self.assigned_to,
            "assignee": self.assignee.display() if self.assignee else None,
            "resolution": self.resolution,
            "resolved_at": _iso(self.resolved_at),
            "resolved_by": self.resolved_by,
            "resolver": self.resolver.display() if self.resolver else None,
            "estimated_time": self.estimated_time,
            "actual_time": self.actual_time,
            "tags": self.tags,
            "attachments": self.attachments or [],
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "age_in_days": age_in_days(self.created_at, now) if self.created_at else None,
            "time_to_resolution": (
                time_to_resolution(self.created_at, self.resolved_at)
                if self.created_at
                else None
            ),
        }
        if include_comments:
            data["comments"] = [c.to_dict() for c in self.comments]
        return data
