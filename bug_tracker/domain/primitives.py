"""
Common primitives shared by the bug model, the policy and the services.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, constr
from ulid import ULID

from .enums import PRIVILEGED_ROLES, Role


def generate_ulid() -> str:
    """Generate a ULID for object IDs.

    ULIDs are lexicographically sortable and globally unique.
    """
    return str(ULID())


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to timezone-aware UTC.

    SQLite hands back naive datetimes even for ``DateTime(timezone=True)``
    columns; those are stored as UTC, so they are tagged rather than shifted.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Identity(BaseModel):
    """The authenticated principal a core operation runs on behalf of.

    Supplied by the transport layer; the core trusts it fully.
    """

    model_config = ConfigDict(frozen=True)

    id: constr(min_length=1, max_length=128)
    role: Role
    is_active: bool = True

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


class Attachment(BaseModel):
    """Metadata for a file attached to a bug. Binary content lives elsewhere."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    filename: constr(min_length=1, max_length=256)
    original_name: Optional[constr(max_length=256)] = None
    mimetype: constr(min_length=1, max_length=128)
    size: int = Field(..., ge=0, description="Size in bytes")
    url: constr(min_length=1, max_length=2000)


class Environment(BaseModel):
    """Where the defect was observed."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    browser: Optional[constr(max_length=100)] = None
    os: Optional[constr(max_length=100)] = None
    version: Optional[constr(max_length=100)] = None
