"""
Statistics over the bug collection.

overview() is a single aggregate row; per_identity() is two GROUP BY status
counts. Neither fails on an empty collection.
"""

from typing import Dict, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ..db.models import BugModel


def _count_where(condition):
    """SUM(CASE WHEN condition THEN 1 ELSE 0 END), zero when no rows."""
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


class StatsService:
    """Aggregate counts for dashboards and profiles."""

    def __init__(self, db: Session):
        self.db = db

    def overview(self, project: Optional[str] = None) -> Dict[str, int]:
        """Global counts, optionally scoped to projects matching ``project``."""
        query = self.db.query(
            func.count(BugModel.id),
            _count_where(BugModel.status == "open"),
            _count_where(BugModel.status == "in_progress"),
            _count_where(BugModel.status == "resolved"),
            _count_where(BugModel.severity == "critical"),
            _count_where(BugModel.priority == "high"),
        )
        if project:
            query = query.filter(BugModel.project.icontains(project, autoescape=True))

        total, open_, in_progress, resolved, critical, high_priority = query.one()
        return {
            "total_bugs": int(total or 0),
            "open_bugs": int(open_ or 0),
            "in_progress_bugs": int(in_progress or 0),
            "resolved_bugs": int(resolved or 0),
            "critical_bugs": int(critical or 0),
            "high_priority_bugs": int(high_priority or 0),
        }

    def _by_status(self, column, identity_id: str) -> Dict[str, int]:
        rows = (
            self.db.query(BugModel.status, func.count(BugModel.id))
            .filter(column == identity_id)
            .group_by(BugModel.status)
            .all()
        )
        # GROUP BY never yields empty groups, so the map is sparse
        return {status: count for status, count in rows if count}

    def per_identity(self, identity_id: str) -> Dict[str, Dict[str, int]]:
        """Counts by status of bugs the identity reported and is assigned."""
        return {
            "reported": self._by_status(BugModel.reported_by, identity_id),
            "assigned": self._by_status(BugModel.assigned_to, identity_id),
        }
