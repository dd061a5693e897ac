"""
Identity management: registration, the directory, profiles and the two
administrative operations (role change, activation change).
"""

from typing import Any, Dict, Optional, Union

import structlog
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..db.audit_service import AuditService
from ..db.models import UserModel
from ..domain.enums import Role
from ..domain.identity import (
    ProfileUpdate,
    RoleUpdate,
    StatusUpdate,
    UserCreate,
    UserQuery,
    validate_schema,
)
from ..domain.primitives import Identity, generate_ulid, utc_now
from ..domain.query import Page
from ..errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ..policy.access import Operation
from .base import authorize, transaction
from .stats import StatsService

logger = structlog.get_logger()


class UserService:
    """Service for managing identities."""

    def __init__(
        self,
        db: Session,
        audit: Optional[AuditService] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.audit = audit or AuditService(db)
        self.settings = settings or get_settings()

    def _username_taken(self, username: str, exclude_id: Optional[str] = None) -> bool:
        query = self.db.query(UserModel.id).filter(UserModel.username == username)
        if exclude_id:
            query = query.filter(UserModel.id != exclude_id)
        return query.first() is not None

    def _with_stats(self, user: UserModel) -> Dict[str, Any]:
        return {
            "user": user.to_dict(),
            "stats": StatsService(self.db).per_identity(user.id),
        }

    def get(self, user_id: str) -> UserModel:
        """Get an identity by ID."""
        user = self.db.get(UserModel, user_id)
        if user is None:
            raise NotFoundError(f"User '{user_id}' not found", code="USER_NOT_FOUND")
        return user

    def register(
        self,
        data: Union[UserCreate, Dict[str, Any]],
        actor: Optional[Identity] = None,
    ) -> UserModel:
        """Register a new identity.

        Raises:
            ValidationError: If the input is malformed
            ConflictError: If the username or email is already in use
        """
        data = validate_schema(UserCreate, data)
        if self._username_taken(data.username):
            raise ConflictError("Username is already taken", code="USERNAME_TAKEN")
        email_taken = (
            self.db.query(UserModel.id).filter(UserModel.email == data.email).first()
        )
        if email_taken is not None:
            raise ConflictError("Email is already registered", code="EMAIL_TAKEN")

        now = utc_now()
        user = UserModel(
            id=generate_ulid(),
            username=data.username,
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
            role=data.role.value,
            is_active=True,
            created_at=now,
            updated_at=now,
        )

        with transaction(self.db, "register user"):
            self.db.add(user)
            self.db.flush()
            self.audit.log_create("User", user.id, user.to_dict(), actor=actor)

        logger.info("User registered", user_id=user.id, username=user.username)
        return user

    def list(
        self,
        actor: Identity,
        query: Union[UserQuery, Dict[str, Any], None] = None,
    ) -> Page:
        """The identity directory (admins and project managers only)."""
        authorize(actor, Operation.LIST_IDENTITIES)
        query = validate_schema(UserQuery, query)
        if query.page_size > self.settings.max_page_size:
            raise ValidationError(
                f"page_size cannot exceed {self.settings.max_page_size}",
                code="PAGE_SIZE_TOO_LARGE",
            )

        q = self.db.query(UserModel)
        if query.role:
            q = q.filter(UserModel.role == query.role.value)
        if query.is_active is not None:
            q = q.filter(UserModel.is_active.is_(query.is_active))
        if query.search:
            term = query.search
            q = q.filter(
                or_(
                    UserModel.username.icontains(term, autoescape=True),
                    UserModel.email.icontains(term, autoescape=True),
                    UserModel.first_name.icontains(term, autoescape=True),
                    UserModel.last_name.icontains(term, autoescape=True),
                )
            )

        total = q.count()
        users = (
            q.order_by(UserModel.created_at.desc(), UserModel.id.asc())
            .offset(query.offset)
            .limit(query.page_size)
            .all()
        )
        return Page.build([u.to_dict() for u in users], query.page, query.page_size, total)

    def detail(self, actor: Identity, user_id: str) -> Dict[str, Any]:
        """An identity with its bug statistics (admins and project managers only)."""
        authorize(actor, Operation.VIEW_IDENTITY)
        return self._with_stats(self.get(user_id))

    def profile(self, actor: Identity) -> Dict[str, Any]:
        """The actor's own identity with its bug statistics."""
        authorize(actor, Operation.VIEW_PROFILE)
        return self._with_stats(self.get(actor.id))

    def update_profile(
        self, actor: Identity, data: Union[ProfileUpdate, Dict[str, Any]]
    ) -> UserModel:
        """Change the actor's own username and/or names."""
        authorize(actor, Operation.UPDATE_PROFILE)
        user = self.get(actor.id)
        data = validate_schema(ProfileUpdate, data)

        changes = {
            name: value
            for name, value in data.model_dump(exclude_unset=True).items()
            if value is not None and getattr(user, name) != value
        }
        if "username" in changes and self._username_taken(changes["username"], user.id):
            raise ConflictError("Username is already taken", code="USERNAME_TAKEN")
        if not changes:
            return user

        before = {name: getattr(user, name) for name in changes}
        with transaction(self.db, "update profile"):
            for name, value in changes.items():
                setattr(user, name, value)
            user.updated_at = utc_now()
            self.audit.log_update("User", user.id, before, changes, actor=actor)

        logger.info("Profile updated", user_id=user.id, fields=sorted(changes))
        return user

    def change_role(
        self, actor: Identity, user_id: str, role: Union[Role, str]
    ) -> UserModel:
        """Set another identity's role (admins only, never on oneself)."""
        authorize(actor, Operation.CHANGE_ROLE, target_id=user_id)
        new_role = validate_schema(RoleUpdate, {"role": role}).role
        user = self.get(user_id)

        old_role = user.role
        if old_role != new_role.value:
            with transaction(self.db, "change role"):
                user.role = new_role.value
                user.updated_at = utc_now()
                self.audit.log_role_change(user.id, old_role, new_role.value, actor=actor)
            logger.info(
                "User role changed",
                user_id=user.id,
                old_role=old_role,
                new_role=new_role.value,
                actor_id=actor.id,
            )
        return user

    def change_active_status(
        self, actor: Identity, user_id: str, is_active: bool
    ) -> UserModel:
        """Activate or deactivate another identity (admins only, never oneself)."""
        authorize(actor, Operation.CHANGE_STATUS, target_id=user_id)
        is_active = validate_schema(StatusUpdate, {"is_active": is_active}).is_active
        user = self.get(user_id)

        was_active = user.is_active
        if was_active != is_active:
            with transaction(self.db, "change user status"):
                user.is_active = is_active
                user.updated_at = utc_now()
                self.audit.log_activation_change(
                    user.id, was_active, is_active, actor=actor
                )
            logger.info(
                "User status changed",
                user_id=user.id,
                is_active=is_active,
                actor_id=actor.id,
            )
        return user
