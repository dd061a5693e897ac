"""
User API Routes.

All endpoints are prefixed with /api/users. Profile endpoints act on the
calling identity; the directory and administrative endpoints are gated by
the access policy.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db.base import get_db
from ..domain.identity import ProfileUpdate, RoleUpdate, StatusUpdate
from ..domain.primitives import Identity
from ..services.users import UserService
from .deps import get_current_identity

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/profile")
async def get_profile(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """The calling identity with its bug statistics."""
    return UserService(db).profile(identity)


@router.put("/profile")
async def update_profile(
    profile: ProfileUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Change the calling identity's username or names."""
    user = UserService(db).update_profile(identity, profile)
    return {"status": "success", "user": user.to_dict()}


@router.get("")
async def list_users(
    role: Optional[str] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = 1,
    page_size: Optional[int] = None,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """The identity directory (admins and project managers only)."""
    query = {
        "role": role,
        "is_active": is_active,
        "search": search,
        "page": page,
        "page_size": get_settings().default_page_size if page_size is None else page_size,
    }
    return UserService(db).list(identity, query).model_dump()


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """An identity with its bug statistics (admins and project managers only)."""
    return UserService(db).detail(identity, user_id)


@router.put("/{user_id}/role")
async def change_role(
    user_id: str,
    body: RoleUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Change another identity's role (admins only)."""
    user = UserService(db).change_role(identity, user_id, body.role)
    return {"status": "success", "user": user.to_dict()}


@router.put("/{user_id}/status")
async def change_status(
    user_id: str,
    body: StatusUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Activate or deactivate another identity (admins only)."""
    user = UserService(db).change_active_status(identity, user_id, body.is_active)
    return {"status": "success", "user": user.to_dict()}
