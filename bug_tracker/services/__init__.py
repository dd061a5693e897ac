"""
Service layer: request-scoped operations over a database session.

Each service checks the acting identity against the access policy, applies
the domain rules and commits the change together with its audit entry.
"""

from .bugs import BugService
from .stats import StatsService
from .users import UserService

__all__ = ["BugService", "StatsService", "UserService"]
