"""
Audit Log Service.

Records who changed what on bugs and identities. Entries are only added to
the session; the calling service commits them together with the change they
describe.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..domain.enums import AuditAction
from ..domain.primitives import Identity, as_utc, generate_ulid, utc_now
from .audit_models import AuditLogModel


def _jsonable(value: Any) -> Any:
    """Make a snapshot value JSON-serializable."""
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _snapshot(state: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if state is None:
        return None
    return _jsonable(state)


class AuditService:
    """Service for managing audit log entries.

    Usage:
        audit = AuditService(db_session)
        audit.log_create("Bug", bug.id, bug.to_dict(), actor=identity)
        db_session.commit()
    """

    def __init__(self, db: Session):
        self.db = db

    def _record(
        self,
        action: AuditAction,
        entity_kind: str,
        entity_id: str,
        actor: Optional[Identity],
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        note: Optional[str] = None,
    ) -> AuditLogModel:
        entry = AuditLogModel(
            id=generate_ulid(),
            ts=utc_now(),
            actor_id=actor.id if actor else "system",
            actor_role=actor.role.value if actor else None,
            action=action.value,
            entity_kind=entity_kind,
            entity_id=entity_id,
            before=_snapshot(before),
            after=_snapshot(after),
            note=note,
        )
        self.db.add(entry)
        return entry

    def log_create(
        self,
        entity_kind: str,
        entity_id: str,
        after: Dict[str, Any],
        actor: Optional[Identity] = None,
        note: Optional[str] = None,
    ) -> AuditLogModel:
        """Log the creation of an entity.

        Args:
            entity_kind: Type of entity ("Bug" or "User")
            entity_id: ID of the entity
            after: State of the entity after creation
            actor: The identity that performed the action (None for system)
            note: Optional human-readable note

        Returns:
            The pending AuditLogModel
        """
        return self._record(
            AuditAction.CREATED, entity_kind, entity_id, actor, after=after, note=note
        )

    def log_update(
        self,
        entity_kind: str,
        entity_id: str,
        before: Dict[str, Any],
        after: Dict[str, Any],
        actor: Optional[Identity] = None,
        note: Optional[str] = None,
    ) -> AuditLogModel:
        """Log an update to an entity; ``before``/``after`` hold only the changed fields."""
        return self._record(
            AuditAction.UPDATED,
            entity_kind,
            entity_id,
            actor,
            before=before,
            after=after,
            note=note,
        )

    def log_status_change(
        self,
        entity_kind: str,
        entity_id: str,
        old_status: str,
        new_status: str,
        actor: Optional[Identity] = None,
        note: Optional[str] = None,
    ) -> AuditLogModel:
        """Log a lifecycle status change on a bug."""
        return self._record(
            AuditAction.STATUS_CHANGED,
            entity_kind,
            entity_id,
            actor,
            before={"status": old_status},
            after={"status": new_status},
            note=note or f"Status changed: {old_status} -> {new_status}",
        )

    def log_delete(
        self,
        entity_kind: str,
        entity_id: str,
        before: Dict[str, Any],
        actor: Optional[Identity] = None,
        note: Optional[str] = None,
    ) -> AuditLogModel:
        """Log the deletion of an entity."""
        return self._record(
            AuditAction.DELETED, entity_kind, entity_id, actor, before=before, note=note
        )

    def log_comment(
        self,
        bug_id: str,
        comment: Dict[str, Any],
        actor: Optional[Identity] = None,
    ) -> AuditLogModel:
        """Log a comment appended to a bug."""
        return self._record(
            AuditAction.COMMENTED, "Bug", bug_id, actor, after={"comment": comment}
        )

    def log_role_change(
        self,
        user_id: str,
        old_role: str,
        new_role: str,
        actor: Optional[Identity] = None,
    ) -> AuditLogModel:
        """Log a role change on an identity."""
        return self._record(
            AuditAction.ROLE_CHANGED,
            "User",
            user_id,
            actor,
            before={"role": old_role},
            after={"role": new_role},
            note=f"Role changed: {old_role} -> {new_role}",
        )

    def log_activation_change(
        self,
        user_id: str,
        old_active: bool,
        new_active: bool,
        actor: Optional[Identity] = None,
    ) -> AuditLogModel:
        """Log an identity being activated or deactivated."""
        return self._record(
            AuditAction.ACTIVATION_CHANGED,
            "User",
            user_id,
            actor,
            before={"is_active": old_active},
            after={"is_active": new_active},
            note="User activated" if new_active else "User deactivated",
        )

    # Query methods

    def query_by_entity(
        self,
        entity_kind: str,
        entity_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogModel]:
        """Get audit history for a specific entity, newest first."""
        return (
            self.db.query(AuditLogModel)
            .filter(
                AuditLogModel.entity_kind == entity_kind,
                AuditLogModel.entity_id == entity_id,
            )
            .order_by(desc(AuditLogModel.ts), desc(AuditLogModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def query_by_actor(
        self,
        actor_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogModel]:
        """Get all audit entries by a specific identity, newest first."""
        return (
            self.db.query(AuditLogModel)
            .filter(AuditLogModel.actor_id == actor_id)
            .order_by(desc(AuditLogModel.ts), desc(AuditLogModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def query_by_action(
        self,
        action: AuditAction,
        entity_kind: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogModel]:
        """Get all audit entries for a specific action type, newest first."""
        query = self.db.query(AuditLogModel).filter(
            AuditLogModel.action == AuditAction(action).value
        )

        if entity_kind:
            query = query.filter(AuditLogModel.entity_kind == entity_kind)

        return (
            query.order_by(desc(AuditLogModel.ts), desc(AuditLogModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )
