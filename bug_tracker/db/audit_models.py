"""
Audit Log Database Models.

Every mutation of a bug or an identity is recorded with a before/after
snapshot of the fields it touched and the identity that made it.
"""

from typing import Any, Dict

from sqlalchemy import JSON, Column, DateTime, Enum, Index, String, Text
from sqlalchemy.sql import func

from ..domain.primitives import as_utc
from .base import Base

# Mirrors bug_tracker.domain.enums.AuditAction
audit_action_enum = Enum(
    "created",
    "updated",
    "status_changed",
    "deleted",
    "commented",
    "role_changed",
    "activation_changed",
    name="audit_action",
)


class AuditLogModel(Base):
    """Audit log entry.

    Entries are written in the same transaction as the change they describe,
    so a rolled-back mutation leaves no trace here either.
    """

    __tablename__ = "audit_log"

    # Primary key (ULID for sortability and uniqueness)
    id = Column(String(36), primary_key=True)

    # Timestamp of the action
    ts = Column(
        DateTime(timezone=True),
        nullable=False,
        default=func.now(),
        index=True,
    )

    # Who performed the action
    actor_id = Column(String(128), nullable=False, index=True)
    actor_role = Column(String(32), nullable=True)

    # What action was performed
    action = Column(audit_action_enum, nullable=False, index=True)

    # What entity was affected ("Bug" or "User")
    entity_kind = Column(String(50), nullable=False, index=True)
    entity_id = Column(String(128), nullable=False, index=True)

    # State before/after the action (JSON snapshots of the touched fields)
    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)

    note = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_audit_log_entity", "entity_kind", "entity_id"),
        Index("ix_audit_log_entity_ts", "entity_kind", "entity_id", "ts"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        ts = as_utc(self.ts)
        return {
            "id": self.id,
            "ts": ts.isoformat() if ts else None,
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "action": self.action,
            "entity_kind": self.entity_kind,
            "entity_id": self.entity_id,
            "before": self.before,
            "after": self.after,
            "note": self.note,
        }
