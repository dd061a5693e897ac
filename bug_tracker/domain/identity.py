"""
Identity directory schemas: registration, profile edits, administrative
role/status changes and the directory listing query.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Type, TypeVar, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    constr,
    field_validator,
)

from ..errors import ValidationError
from .enums import Role
from .query import DEFAULT_PAGE_SIZE

USERNAME_PATTERN = r"^[A-Za-z0-9_]{3,30}$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

Username = constr(pattern=USERNAME_PATTERN)
PersonName = constr(min_length=1, max_length=50)


class UserCreate(BaseModel):
    """Schema for registering an identity."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    username: Username
    email: constr(max_length=254, pattern=EMAIL_PATTERN)
    first_name: Optional[PersonName] = None
    last_name: Optional[PersonName] = None
    role: Role = Role.DEVELOPER

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, email: str) -> str:
        return email.lower()


class ProfileUpdate(BaseModel):
    """Fields an identity may change about itself."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    username: Optional[Username] = None
    first_name: Optional[PersonName] = None
    last_name: Optional[PersonName] = None


class RoleUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role: Role


class StatusUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_active: bool


class UserQuery(BaseModel):
    """Directory listing request, newest identities first."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    role: Optional[Role] = None
    is_active: Optional[bool] = None
    search: Optional[str] = Field(
        None, description="Case-insensitive substring of username, email or name"
    )
    page: int = Field(1, ge=1)
    page_size: int = Field(DEFAULT_PAGE_SIZE, ge=1)

    @field_validator("role", "search", mode="before")
    @classmethod
    def blank_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


SchemaT = TypeVar("SchemaT", bound=BaseModel)


def validate_schema(
    schema: Type[SchemaT], data: Union[SchemaT, Dict[str, Any], None]
) -> SchemaT:
    """Validate ``data`` against ``schema``, raising the core ValidationError."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data or {})
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e
