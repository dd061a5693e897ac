"""
Bug API Routes.

All endpoints are prefixed with /api/bugs and act on behalf of the identity
resolved by get_current_identity.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db.base import get_db
from ..domain.bug import BugCreate, BugUpdate, CommentCreate
from ..domain.primitives import Identity
from ..policy.access import Operation
from ..services.base import authorize
from ..services.bugs import BugService
from ..services.stats import StatsService
from .deps import get_current_identity

router = APIRouter(prefix="/api/bugs", tags=["bugs"])


@router.get("")
async def list_bugs(
    status: Optional[str] = None,
    severity: Optional[str] = None,
    priority: Optional[str] = None,
    category: Optional[str] = None,
    project: Optional[str] = None,
    assigned_to: Optional[str] = None,
    reported_by: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc"),
    page: int = 1,
    page_size: Optional[int] = None,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """List bugs with filtering, sorting and pagination."""
    query = {
        "filters": {
            "status": status,
            "severity": severity,
            "priority": priority,
            "category": category,
            "project": project,
            "assigned_to": assigned_to,
            "reported_by": reported_by,
            "search": search,
        },
        "sort": {"field": sort_by, "direction": sort_order},
        "page": page,
        "page_size": get_settings().default_page_size if page_size is None else page_size,
    }
    return BugService(db).list(query, identity).model_dump()


@router.post("", status_code=201)
async def create_bug(
    bug: BugCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Report a new bug."""
    db_bug = BugService(db).create(bug, identity)
    return {"status": "success", "bug": db_bug.to_dict()}


@router.get("/stats/overview")
async def stats_overview(
    project: Optional[str] = None,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Counts over all bugs, optionally scoped to a project."""
    authorize(identity, Operation.READ)
    return {"overview": StatsService(db).overview(project=project)}


@router.get("/{bug_id}")
async def get_bug(
    bug_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get a bug with its comments."""
    return BugService(db).get(bug_id, identity).to_dict()


@router.put("/{bug_id}")
async def update_bug(
    bug_id: str,
    patch: BugUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Partially update a bug; only fields present in the body are applied."""
    db_bug = BugService(db).update(bug_id, patch, identity)
    return {"status": "success", "bug": db_bug.to_dict()}


@router.delete("/{bug_id}")
async def delete_bug(
    bug_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Permanently delete a bug (admins and project managers only)."""
    BugService(db).delete(bug_id, identity)
    return {"status": "success", "message": "Bug deleted"}


@router.get("/{bug_id}/comments")
async def list_comments(
    bug_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """Comments in the order they were added."""
    return BugService(db).list_comments(bug_id, identity)


@router.post("/{bug_id}/comments", status_code=201)
async def add_comment(
    bug_id: str,
    comment: CommentCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Append a comment to a bug."""
    result = BugService(db).add_comment(bug_id, comment.content, identity)
    return {"status": "success", "comment": result}
