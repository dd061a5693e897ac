"""Tests for the operator CLI."""

import pytest
from sqlalchemy.orm import sessionmaker
from typer.testing import CliRunner

from bug_tracker import cli
from bug_tracker.db.models import UserModel

runner = CliRunner()


@pytest.fixture(autouse=True)
def test_database(engine, monkeypatch):
    """Point the CLI at the in-memory test database."""
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    monkeypatch.setattr(cli, "get_session_local", lambda: factory)
    monkeypatch.setattr(cli, "init_database", lambda: None)
    return factory


@pytest.fixture
def dropped(monkeypatch):
    calls = []
    monkeypatch.setattr(cli, "drop_database", lambda: calls.append(True))
    return calls


def test_init_db():
    result = runner.invoke(cli.app, ["init-db"])

    assert result.exit_code == 0
    assert "Database initialized" in result.output


def test_drop_db_with_yes(dropped):
    result = runner.invoke(cli.app, ["drop-db", "--yes"])

    assert result.exit_code == 0
    assert dropped == [True]
    assert "Database tables dropped" in result.output


def test_drop_db_aborted(dropped):
    result = runner.invoke(cli.app, ["drop-db"], input="n\n")

    assert result.exit_code == 1
    assert dropped == []


def test_create_user(test_database):
    result = runner.invoke(cli.app, ["create-user", "alice", "alice@example.com", "--role", "admin"])

    assert result.exit_code == 0
    session = test_database()
    user = session.query(UserModel).filter_by(username="alice").one()
    assert user.role == "admin"
    session.close()


def test_create_user_conflict():
    runner.invoke(cli.app, ["create-user", "alice", "alice@example.com"])

    result = runner.invoke(cli.app, ["create-user", "alice", "other@example.com"])

    assert result.exit_code == 1
    assert "already taken" in result.output


def test_list_bugs_empty():
    result = runner.invoke(cli.app, ["list-bugs"])

    assert result.exit_code == 0
    assert "No bugs found" in result.output


def test_stats():
    result = runner.invoke(cli.app, ["stats"])

    assert result.exit_code == 0
    assert "Total bugs" in result.output
