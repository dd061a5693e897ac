"""
Bug service: create, read, update, delete, list and comment on bugs.

Every operation runs the same sequence: the inactive-account check, the
lookup, the access policy, then the entity rules. Mutations and their audit
entries are committed together.
"""

from typing import Any, Dict, List, Optional, Union

import structlog
from sqlalchemy.orm import Session, joinedload

from ..config import Settings, get_settings
from ..db.audit_service import AuditService
from ..db.models import BugModel, BugTagModel, UserModel
from ..domain.bug import (
    BugCreate,
    BugUpdate,
    append_comment,
    apply_update,
    new_bug_fields,
    validate_create,
    validate_update,
)
from ..domain.enums import BugStatus
from ..domain.primitives import Identity, generate_ulid, utc_now
from ..domain.query import BugQuery, Page, SortDirection, validate_query
from ..errors import NotFoundError, ValidationError
from ..policy.access import Operation, require_active
from ..policy.transitions import TransitionTable, get_default_transitions
from .base import authorize, transaction

logger = structlog.get_logger()


class BugService:
    """Service for managing bugs and their comments."""

    def __init__(
        self,
        db: Session,
        audit: Optional[AuditService] = None,
        transitions: Optional[TransitionTable] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.audit = audit or AuditService(db)
        self.transitions = transitions or get_default_transitions()
        self.settings = settings or get_settings()

    # Helpers

    def _load(self, bug_id: str) -> BugModel:
        bug = self.db.get(BugModel, bug_id)
        if bug is None:
            raise NotFoundError(f"Bug '{bug_id}' not found", code="BUG_NOT_FOUND")
        return bug

    def _require_identity(self, user_id: Optional[str], field: str) -> None:
        """Referenced identities must exist."""
        if user_id is None:
            return
        if self.db.get(UserModel, user_id) is None:
            raise ValidationError(
                f"Unknown identity '{user_id}'",
                code="UNKNOWN_IDENTITY",
                details=[
                    {"field": field, "message": "Identity does not exist", "type": "reference"}
                ],
            )

    # Operations

    def create(
        self, data: Union[BugCreate, Dict[str, Any]], actor: Identity
    ) -> BugModel:
        """Report a new bug on behalf of ``actor``."""
        authorize(actor, Operation.CREATE)
        data = validate_create(data)
        self._require_identity(data.assigned_to, "assigned_to")

        now = utc_now()
        bug = BugModel(id=generate_ulid(), **new_bug_fields(data, actor, now))

        with transaction(self.db, "create bug"):
            self.db.add(bug)
            self.db.flush()
            self.audit.log_create(
                "Bug", bug.id, bug.to_dict(now=now, include_comments=False), actor=actor
            )

        self.db.refresh(bug)
        logger.info("Bug created", bug_id=bug.id, actor_id=actor.id, project=bug.project)
        return bug

    def get(self, bug_id: str, actor: Identity) -> BugModel:
        """Get a bug by ID."""
        authorize(actor, Operation.READ)
        return self._load(bug_id)

    def update(
        self,
        bug_id: str,
        patch: Union[BugUpdate, Dict[str, Any]],
        actor: Identity,
    ) -> BugModel:
        """Apply a partial update.

        Raises:
            InactiveAccountError: If the actor is deactivated
            NotFoundError: If the bug does not exist
            PermissionDeniedError: If the actor is not reporter, assignee or privileged
            ValidationError: On constraint, reference or transition violations
        """
        require_active(actor)
        bug = self._load(bug_id)
        authorize(actor, Operation.UPDATE, bug=bug)

        patch = validate_update(patch)
        requested = patch.model_fields_set
        if "assigned_to" in requested:
            self._require_identity(patch.assigned_to, "assigned_to")
        target = patch.status if "status" in requested else BugStatus(bug.status)
        # resolved_by is discarded unless the bug ends up resolved
        if (
            "resolved_by" in requested
            and actor.is_privileged
            and target == BugStatus.RESOLVED
        ):
            self._require_identity(patch.resolved_by, "resolved_by")

        before = bug.to_dict(include_comments=False)
        previous_status = bug.status

        with transaction(self.db, "update bug"):
            changes = apply_update(bug, patch, actor, utc_now(), self.transitions)
            if changes:
                self.audit.log_update(
                    "Bug",
                    bug.id,
                    before={name: before.get(name) for name in changes},
                    after=changes,
                    actor=actor,
                )
            if "status" in changes:
                self.audit.log_status_change(
                    "Bug", bug.id, previous_status, changes["status"], actor=actor
                )

        self.db.refresh(bug)
        logger.info(
            "Bug updated",
            bug_id=bug.id,
            actor_id=actor.id,
            fields=sorted(changes),
        )
        return bug

    def delete(self, bug_id: str, actor: Identity) -> None:
        """Permanently delete a bug and its comments."""
        authorize(actor, Operation.DELETE)
        bug = self._load(bug_id)

        with transaction(self.db, "delete bug"):
            self.audit.log_delete(
                "Bug", bug.id, bug.to_dict(include_comments=False), actor=actor
            )
            self.db.delete(bug)

        logger.info("Bug deleted", bug_id=bug_id, actor_id=actor.id)

    def list(
        self,
        query: Union[BugQuery, Dict[str, Any], None],
        actor: Identity,
    ) -> Page:
        """List bugs matching the query, one page at a time."""
        authorize(actor, Operation.READ)
        query = validate_query(query, max_page_size=self.settings.max_page_size)
        filters = query.filters

        q = self.db.query(BugModel)

        if filters.status:
            q = q.filter(BugModel.status == filters.status.value)
        if filters.severity:
            q = q.filter(BugModel.severity == filters.severity.value)
        if filters.priority:
            q = q.filter(BugModel.priority == filters.priority.value)
        if filters.category:
            q = q.filter(BugModel.category == filters.category.value)
        if filters.project:
            q = q.filter(BugModel.project.icontains(filters.project, autoescape=True))
        if filters.assigned_to:
            q = q.filter(BugModel.assigned_to == filters.assigned_to)
        if filters.reported_by:
            q = q.filter(BugModel.reported_by == filters.reported_by)
        if filters.search:
            term = filters.search
            q = q.filter(
                BugModel.title.icontains(term, autoescape=True)
                | BugModel.description.icontains(term, autoescape=True)
                | BugModel.tag_rows.any(BugTagModel.value.icontains(term, autoescape=True))
            )

        total = q.count()

        column = getattr(BugModel, query.sort.field.value)
        order = column.asc() if query.sort.direction == SortDirection.ASC else column.desc()
        bugs = (
            q.options(joinedload(BugModel.reporter), joinedload(BugModel.assignee))
            .order_by(order, BugModel.id.asc())
            .offset(query.offset)
            .limit(query.page_size)
            .all()
        )

        now = utc_now()
        items = [bug.to_dict(now=now, include_comments=False) for bug in bugs]
        return Page.build(items, query.page, query.page_size, total)

    def add_comment(
        self, bug_id: str, content: Optional[str], actor: Identity
    ) -> Dict[str, Any]:
        """Append a comment to a bug; returns the new comment."""
        authorize(actor, Operation.COMMENT)
        bug = self._load(bug_id)

        with transaction(self.db, "add comment"):
            comment = append_comment(bug, content, actor, utc_now())
            self.db.flush()
            result = comment.to_dict()
            self.audit.log_comment(bug.id, result, actor=actor)

        logger.info("Comment added", bug_id=bug.id, comment_id=result["id"], actor_id=actor.id)
        return result

    def list_comments(self, bug_id: str, actor: Identity) -> List[Dict[str, Any]]:
        """Comments of a bug in the order they were added."""
        authorize(actor, Operation.READ)
        bug = self._load(bug_id)
        return [comment.to_dict() for comment in bug.comments]
