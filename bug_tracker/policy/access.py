"""
Access control policy for bug and identity operations.

A single, pure decision function answers "may this identity do this?" for
every operation the core exposes, so enforcement points cannot drift apart.
No DB access, no FastAPI request objects.

Rules:
- Any operation by an inactive identity is denied first (ACCOUNT_INACTIVE).
- create / read / comment / view_profile / update_profile: any active identity
- update: the reporter, the assignee, or a privileged role
- delete: privileged roles only
- list_identities / view_identity: privileged roles only
- change_role / change_status: admin only, and never on oneself

Privileged roles are admin and project_manager.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

from ..domain.enums import Role
from ..domain.primitives import Identity
from ..errors import InactiveAccountError, PermissionDeniedError


class Operation(str, Enum):
    """Operations gated by the policy."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    COMMENT = "comment"
    LIST_IDENTITIES = "list_identities"
    VIEW_IDENTITY = "view_identity"
    CHANGE_ROLE = "change_role"
    CHANGE_STATUS = "change_status"
    VIEW_PROFILE = "view_profile"
    UPDATE_PROFILE = "update_profile"


class Decision(BaseModel):
    """Outcome of a policy check.

    Attributes:
        allowed: Whether the operation may proceed
        code: Stable denial code for programmatic handling
        reason: Human-readable denial reason
    """

    allowed: bool
    code: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, code: str, reason: str) -> "Decision":
        return cls(allowed=False, code=code, reason=reason)


ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"


def _any_active(actor: Identity, bug: Any, target_id: Optional[str]) -> Decision:
    return Decision.allow()


def _privileged_only(message: str) -> Callable[..., Decision]:
    def rule(actor: Identity, bug: Any, target_id: Optional[str]) -> Decision:
        if actor.is_privileged:
            return Decision.allow()
        return Decision.deny("ROLE_NOT_PRIVILEGED", message)

    return rule


def _can_update(actor: Identity, bug: Any, target_id: Optional[str]) -> Decision:
    if bug is None:
        raise ValueError("update decisions require the bug being updated")
    if actor.id == bug.reported_by:
        return Decision.allow()
    if bug.assigned_to is not None and actor.id == bug.assigned_to:
        return Decision.allow()
    if actor.is_privileged:
        return Decision.allow()
    return Decision.deny(
        "NOT_REPORTER_OR_ASSIGNEE", "Insufficient permissions to update this bug"
    )


def _admin_on_others(subject: str) -> Callable[..., Decision]:
    def rule(actor: Identity, bug: Any, target_id: Optional[str]) -> Decision:
        if target_id is None:
            raise ValueError(f"{subject} decisions require the target identity id")
        if actor.role != Role.ADMIN:
            return Decision.deny(
                "ADMIN_REQUIRED", f"Only administrators can change a user's {subject}"
            )
        if actor.id == target_id:
            return Decision.deny(
                "SELF_MODIFICATION", f"You cannot change your own {subject}"
            )
        return Decision.allow()

    return rule


_RULES: Dict[Operation, Callable[..., Decision]] = {
    Operation.CREATE: _any_active,
    Operation.READ: _any_active,
    Operation.COMMENT: _any_active,
    Operation.VIEW_PROFILE: _any_active,
    Operation.UPDATE_PROFILE: _any_active,
    Operation.UPDATE: _can_update,
    Operation.DELETE: _privileged_only("Only admins and project managers can delete bugs"),
    Operation.LIST_IDENTITIES: _privileged_only(
        "Only admins and project managers can list users"
    ),
    Operation.VIEW_IDENTITY: _privileged_only(
        "Only admins and project managers can view user details"
    ),
    Operation.CHANGE_ROLE: _admin_on_others("role"),
    Operation.CHANGE_STATUS: _admin_on_others("status"),
}


def decide(
    actor: Identity,
    operation: Operation,
    bug: Any = None,
    target_id: Optional[str] = None,
) -> Decision:
    """
    Decide whether ``actor`` may perform ``operation``.

    Args:
        actor: The authenticated principal
        operation: The operation being attempted
        bug: The bug being acted on (required for UPDATE); any object with
             ``reported_by`` and ``assigned_to`` attributes
        target_id: The identity being acted on (required for CHANGE_ROLE and
                   CHANGE_STATUS)

    Returns:
        A Decision; denials carry a stable code and a reason
    """
    if not actor.is_active:
        return Decision.deny(ACCOUNT_INACTIVE, "User account is deactivated")
    return _RULES[Operation(operation)](actor, bug, target_id)


def enforce(
    actor: Identity,
    operation: Operation,
    bug: Any = None,
    target_id: Optional[str] = None,
) -> None:
    """
    Like decide(), but raises on denial.

    Raises:
        InactiveAccountError: If the actor is deactivated
        PermissionDeniedError: If the actor lacks the rights for the operation
    """
    decision = decide(actor, operation, bug=bug, target_id=target_id)
    if decision.allowed:
        return
    if decision.code == ACCOUNT_INACTIVE:
        raise InactiveAccountError(decision.reason, code=decision.code)
    raise PermissionDeniedError(decision.reason, code=decision.code)


def require_active(actor: Identity) -> None:
    """Raise InactiveAccountError for a deactivated identity; the earliest check in every flow."""
    if not actor.is_active:
        raise InactiveAccountError("User account is deactivated", code=ACCOUNT_INACTIVE)
