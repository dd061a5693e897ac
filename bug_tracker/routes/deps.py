"""
Request dependencies.

Bearer tokens are verified by the gateway in front of this service, which
forwards the authenticated identity id in the ``X-User-Id`` header.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from ..db.base import get_db
from ..db.models import UserModel
from ..domain.primitives import Identity
from ..errors import AuthenticationError

USER_ID_HEADER = "X-User-Id"


async def get_current_identity(
    x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER),
    db: Session = Depends(get_db),
) -> Identity:
    """Resolve the acting identity; inactive identities are rejected by the services."""
    if not x_user_id:
        raise AuthenticationError("Authentication is required")

    user = db.get(UserModel, x_user_id)
    if user is None:
        raise AuthenticationError("User not found", code="UNKNOWN_IDENTITY")
    return user.to_identity()
