"""Test configuration and fixtures."""

from datetime import timedelta
from typing import Callable, Dict, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bug_tracker.api import create_app
from bug_tracker.config import Settings
from bug_tracker.db import audit_models, models  # noqa: F401
from bug_tracker.db.base import Base, get_db
from bug_tracker.db.models import UserModel
from bug_tracker.domain.primitives import generate_ulid, utc_now
from bug_tracker.policy.transitions import TransitionTable
from bug_tracker.services import BugService, StatsService, UserService


@pytest.fixture
def engine():
    """A fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Session:
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def settings() -> Settings:
    return Settings(default_page_size=10, max_page_size=100, status_transitions=None)


@pytest.fixture
def make_user(db_session) -> Callable[..., UserModel]:
    """Factory inserting a user row directly."""
    counter = {"n": 0}

    def _make(
        role: str = "developer",
        username: Optional[str] = None,
        is_active: bool = True,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> UserModel:
        counter["n"] += 1
        username = username or f"{role}_{counter['n']}"
        now = utc_now()
        user = UserModel(
            id=generate_ulid(),
            username=username,
            email=f"{username}@example.com",
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_active=is_active,
            # Distinct creation times keep directory ordering predictable
            created_at=now + timedelta(seconds=counter["n"]),
            updated_at=now,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def users(make_user) -> Dict[str, UserModel]:
    """One user per role of interest."""
    return {
        "reporter": make_user("developer", username="reporter"),
        "assignee": make_user("developer", username="assignee"),
        "outsider": make_user("tester", username="outsider"),
        "admin": make_user("admin", username="admin"),
        "pm": make_user("project_manager", username="manager"),
    }


@pytest.fixture
def bug_service(db_session, settings) -> BugService:
    return BugService(db_session, transitions=TransitionTable(), settings=settings)


@pytest.fixture
def user_service(db_session, settings) -> UserService:
    return UserService(db_session, settings=settings)


@pytest.fixture
def stats_service(db_session) -> StatsService:
    return StatsService(db_session)


@pytest.fixture
def client(db_session):
    """API client sharing the test session; lifespan is not run."""
    app = create_app()

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)
