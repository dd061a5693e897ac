"""Shared unit-of-work handling for the service layer."""

from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.primitives import Identity
from ..errors import BugTrackerError, ConflictError, InternalError, PermissionDeniedError
from ..policy.access import Operation, enforce

logger = structlog.get_logger()


@contextmanager
def transaction(db: Session, operation: str) -> Iterator[Session]:
    """Commit once on success; roll back and re-raise on any failure.

    Core errors pass through unchanged. A unique-constraint race surfaces as
    ConflictError; any other database error is logged and surfaced as an
    opaque InternalError.
    """
    try:
        yield db
        db.commit()
    except BugTrackerError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        logger.warning("Integrity violation", operation=operation, error=str(e.orig))
        raise ConflictError(f"Failed to {operation}: conflicts with existing data") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Database operation failed", operation=operation, error=str(e))
        raise InternalError(f"Failed to {operation}") from e


def authorize(actor: Identity, operation: Operation, **kwargs: Any) -> None:
    """Enforce the access policy, logging denials."""
    try:
        enforce(actor, operation, **kwargs)
    except PermissionDeniedError as e:
        logger.warning(
            "Permission denied",
            operation=operation.value,
            actor_id=actor.id,
            code=e.code,
        )
        raise
