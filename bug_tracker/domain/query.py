"""
Query contract for bug listings: filter, sort and page parameters and the
shape of a page of results.

All provided filter fields are ANDed. ``search`` matches title, description
or any tag (case-insensitive substring) and is ANDed with the rest. Ordering
is always (sort field, direction) then id ascending, so equal sort keys never
produce an unstable page boundary.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
)

from ..errors import ValidationError
from .enums import BugStatus, Category, Priority, Severity

DEFAULT_PAGE_SIZE = 10


class SortField(str, Enum):
    """Columns a listing may be ordered by."""

    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    TITLE = "title"
    STATUS = "status"
    SEVERITY = "severity"
    PRIORITY = "priority"
    CATEGORY = "category"
    PROJECT = "project"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class BugFilter(BaseModel):
    """Listing filters. Empty strings are treated as absent."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    status: Optional[BugStatus] = None
    severity: Optional[Severity] = None
    priority: Optional[Priority] = None
    category: Optional[Category] = None
    project: Optional[str] = Field(None, description="Case-insensitive substring")
    assigned_to: Optional[str] = None
    reported_by: Optional[str] = None
    search: Optional[str] = Field(
        None, description="Case-insensitive substring of title, description or a tag"
    )

    @field_validator("*", mode="before")
    @classmethod
    def blank_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class BugSort(BaseModel):
    model_config = ConfigDict(extra="forbid")

    field: SortField = SortField.CREATED_AT
    direction: SortDirection = SortDirection.DESC


class BugQuery(BaseModel):
    """A complete listing request."""

    model_config = ConfigDict(extra="forbid")

    filters: BugFilter = Field(default_factory=BugFilter)
    sort: BugSort = Field(default_factory=BugSort)
    page: int = Field(1, ge=1)
    page_size: int = Field(DEFAULT_PAGE_SIZE, ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def validate_query(
    data: Union[BugQuery, Dict[str, Any], None], max_page_size: Optional[int] = None
) -> BugQuery:
    """Validate listing input, raising the core ValidationError on failure."""
    if data is None:
        query = BugQuery()
    elif isinstance(data, BugQuery):
        query = data
    else:
        try:
            query = BugQuery.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e, "Invalid query parameters") from e

    if max_page_size is not None and query.page_size > max_page_size:
        raise ValidationError(
            f"page_size cannot exceed {max_page_size}", code="PAGE_SIZE_TOO_LARGE"
        )
    return query


def total_pages_for(total: int, page_size: int) -> int:
    """ceil(total / page_size); zero when there is nothing to show."""
    if total <= 0:
        return 0
    return -(-total // page_size)


class Page(BaseModel):
    """One page of a listing."""

    items: List[Dict[str, Any]]
    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(
        cls, items: List[Dict[str, Any]], page: int, page_size: int, total: int
    ) -> "Page":
        total_pages = total_pages_for(total, page_size)
        return cls(
            items=items,
            page=page,
            page_size=page_size,
            total_items=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )
