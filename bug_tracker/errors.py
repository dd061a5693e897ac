"""
Error taxonomy for the bug tracker core.

Every failure the core reports is one of these typed errors. Each carries a
stable ``kind`` (the error family), a ``code`` for programmatic handling and a
human-readable ``message``. The transport layer maps ``http_status`` onto the
response; the core itself never deals in status codes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError


class BugTrackerError(Exception):
    """Base class for all expected core outcomes.

    Attributes:
        code: Stable error code for programmatic handling
        message: Human-readable error description
        details: Optional field-level details (validation failures)
    """

    kind = "internal_error"
    default_code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        self.code = code or self.default_code
        self.message = message
        self.details = details or []
        super().__init__(f"{self.code}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        body: Dict[str, Any] = {
            "kind": self.kind,
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            body["details"] = self.details
        return {"error": body}


class ValidationError(BugTrackerError):
    """A field constraint or state rule was violated by the caller."""

    kind = "validation_error"
    default_code = "VALIDATION_ERROR"
    http_status = 400

    @classmethod
    def from_pydantic(
        cls, exc: PydanticValidationError, message: str = "Validation failed"
    ) -> "ValidationError":
        """Build a core validation error from a schema validation failure."""
        details = [
            {
                "field": ".".join(str(loc) for loc in err["loc"]) or "__root__",
                "message": err["msg"],
                "type": err["type"],
            }
            for err in exc.errors()
        ]
        return cls(message, details=details)


class NotFoundError(BugTrackerError):
    """A referenced bug or identity does not exist."""

    kind = "not_found"
    default_code = "NOT_FOUND"
    http_status = 404


class PermissionDeniedError(BugTrackerError):
    """The identity is authenticated but not authorized for the operation."""

    kind = "permission_error"
    default_code = "PERMISSION_DENIED"
    http_status = 403


class InactiveAccountError(BugTrackerError):
    """The identity has been deactivated."""

    kind = "inactive_account"
    default_code = "ACCOUNT_INACTIVE"
    http_status = 401


class ConflictError(BugTrackerError):
    """The change collides with existing state (e.g. a taken username)."""

    kind = "conflict"
    default_code = "CONFLICT"
    http_status = 409


class InternalError(BugTrackerError):
    """Opaque wrapper for unexpected persistence failures."""


class AuthenticationError(BugTrackerError):
    """No known identity accompanies the request."""

    kind = "authentication_error"
    default_code = "NOT_AUTHENTICATED"
    http_status = 401
