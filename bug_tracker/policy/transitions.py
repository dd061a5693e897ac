"""
Status transition table.

By default the lifecycle is open: any status may move to any other, and the
only sequencing rule is the resolution invariant enforced by the bug model.
Deployments that want a stricter workflow supply the table as configuration
(STATUS_TRANSITIONS) instead of it being hardcoded here.

Configuration:
- STATUS_TRANSITIONS: JSON object mapping a status to the list of statuses it
  may move to, e.g. {"open": ["in_progress", "closed"], "resolved": ["closed",
  "reopened"]}. Statuses missing from the object may not move anywhere.
  Unset = permissive.
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Set

from pydantic import BaseModel

from ..domain.enums import BugStatus
from ..errors import ValidationError


class TransitionTable(BaseModel):
    """Allowed status moves; ``None`` means every move is allowed."""

    allowed: Optional[Dict[BugStatus, Set[BugStatus]]] = None

    @classmethod
    def from_mapping(
        cls, raw: Optional[Mapping[str, Iterable[str]]]
    ) -> "TransitionTable":
        """Build a table from plain strings (settings or JSON)."""
        if raw is None:
            return cls()
        try:
            allowed = {
                BugStatus(source): {BugStatus(target) for target in targets}
                for source, targets in raw.items()
            }
        except ValueError as e:
            raise ValueError(f"Invalid status transition table: {e}") from e
        return cls(allowed=allowed)

    @property
    def permissive(self) -> bool:
        return self.allowed is None

    def is_allowed(self, current: BugStatus, target: BugStatus) -> bool:
        """Staying in the same status is always allowed."""
        if self.allowed is None or current == target:
            return True
        return target in self.allowed.get(current, set())

    def check(self, current: BugStatus, target: BugStatus) -> None:
        """Raise ValidationError if ``current -> target`` is not allowed."""
        if not self.is_allowed(current, target):
            raise ValidationError(
                f"Status cannot move from '{current.value}' to '{target.value}'",
                code="INVALID_TRANSITION",
            )


def get_default_transitions() -> TransitionTable:
    """
    Get the transition table from environment settings.

    Lazy-loads the settings to avoid circular imports.
    """
    from bug_tracker.config import settings

    return TransitionTable.from_mapping(settings.status_transitions)
