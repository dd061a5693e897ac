"""
HTTP transport for the bug tracker core.
"""

from .bugs import router as bugs_router
from .errors import register_error_handlers
from .users import router as users_router

__all__ = ["bugs_router", "register_error_handlers", "users_router"]
