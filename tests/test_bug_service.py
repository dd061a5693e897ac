"""
Integration tests for BugService against an in-memory database.

Verifies:
- create / get / update / delete with the access policy applied
- the resolution invariant through the persistence round trip
- failed writes leave the stored record unchanged
- comments are append-only, ordered and isolated per bug
"""

import pytest

from bug_tracker.db.audit_models import AuditLogModel
from bug_tracker.db.models import BugModel, BugTagModel, CommentModel
from bug_tracker.errors import (
    InactiveAccountError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


def make_payload(**overrides) -> dict:
    payload = {
        "title": "Crash on save",
        "description": "The editor crashes when saving a large file",
        "severity": "critical",
        "priority": "high",
        "category": "backend",
        "project": "Alpha",
    }
    payload.update(overrides)
    return payload


class TestCreate:
    def test_create_sets_defaults(self, bug_service, users):
        reporter = users["reporter"].to_identity()

        bug = bug_service.create(make_payload(tags=["save", "crash"]), reporter)

        assert bug.id
        assert bug.status == "open"
        assert bug.reported_by == reporter.id
        assert bug.resolved_at is None
        assert bug.tags == ["save", "crash"]

    def test_create_with_unknown_assignee(self, bug_service, users):
        with pytest.raises(ValidationError) as exc_info:
            bug_service.create(
                make_payload(assigned_to="nobody"), users["reporter"].to_identity()
            )

        assert exc_info.value.code == "UNKNOWN_IDENTITY"

    def test_inactive_cannot_create(self, bug_service, make_user, db_session):
        inactive = make_user("admin", is_active=False)

        with pytest.raises(InactiveAccountError):
            bug_service.create(make_payload(), inactive.to_identity())

        assert db_session.query(BugModel).count() == 0

    def test_invalid_payload(self, bug_service, users, db_session):
        with pytest.raises(ValidationError):
            bug_service.create(make_payload(priority="p0"), users["reporter"].to_identity())

        assert db_session.query(BugModel).count() == 0

    def test_create_is_audited(self, bug_service, users, db_session):
        bug = bug_service.create(make_payload(), users["reporter"].to_identity())

        entry = db_session.query(AuditLogModel).filter_by(entity_id=bug.id).one()
        assert entry.action == "created"
        assert entry.actor_id == users["reporter"].id
        assert entry.after["title"] == "Crash on save"


class TestGet:
    def test_get_unknown(self, bug_service, users):
        with pytest.raises(NotFoundError) as exc_info:
            bug_service.get("missing", users["reporter"].to_identity())

        assert exc_info.value.http_status == 404

    def test_any_identity_can_read(self, bug_service, users):
        bug = bug_service.create(make_payload(), users["reporter"].to_identity())

        found = bug_service.get(bug.id, users["outsider"].to_identity())

        assert found.id == bug.id

    def test_inactive_checked_before_lookup(self, bug_service, make_user):
        inactive = make_user(is_active=False)

        with pytest.raises(InactiveAccountError):
            bug_service.get("missing", inactive.to_identity())


class TestUpdate:
    @pytest.fixture
    def bug(self, bug_service, users):
        return bug_service.create(
            make_payload(assigned_to=users["assignee"].id),
            users["reporter"].to_identity(),
        )

    def test_end_to_end_resolution(self, bug_service, users):
        reporter = users["reporter"].to_identity()
        admin = users["admin"].to_identity()

        bug = bug_service.create(make_payload(), reporter)
        assert bug.status == "open"
        assert bug.resolved_at is None

        bug = bug_service.update(bug.id, {"status": "resolved"}, reporter)
        assert bug.status == "resolved"
        assert bug.resolved_at is not None
        assert bug.resolved_by == reporter.id

        bug = bug_service.update(bug.id, {"status": "reopened"}, admin)
        assert bug.status == "reopened"
        assert bug.resolved_at is None
        assert bug.resolved_by is None

    def test_assignee_can_update(self, bug_service, users, bug):
        updated = bug_service.update(
            bug.id, {"status": "in_progress"}, users["assignee"].to_identity()
        )
        assert updated.status == "in_progress"

    def test_pm_can_update(self, bug_service, users, bug):
        updated = bug_service.update(bug.id, {"priority": "urgent"}, users["pm"].to_identity())
        assert updated.priority == "urgent"

    def test_read_after_failed_write(self, bug_service, users, bug, db_session):
        with pytest.raises(PermissionDeniedError) as exc_info:
            bug_service.update(
                bug.id,
                {"title": "Hijacked", "status": "closed"},
                users["outsider"].to_identity(),
            )
        assert exc_info.value.code == "NOT_REPORTER_OR_ASSIGNEE"

        db_session.expire_all()
        stored = bug_service.get(bug.id, users["reporter"].to_identity())
        assert stored.title == "Crash on save"
        assert stored.status == "open"

    def test_validation_failure_leaves_record(self, bug_service, users, bug, db_session):
        with pytest.raises(ValidationError):
            bug_service.update(
                bug.id,
                {"title": "Fine", "description": "x" * 2001},
                users["reporter"].to_identity(),
            )

        db_session.expire_all()
        assert db_session.get(BugModel, bug.id).title == "Crash on save"

    def test_unknown_bug(self, bug_service, users):
        with pytest.raises(NotFoundError):
            bug_service.update("missing", {"title": "x"}, users["admin"].to_identity())

    def test_inactive_before_not_found(self, bug_service, make_user):
        inactive = make_user("admin", is_active=False)

        with pytest.raises(InactiveAccountError):
            bug_service.update("missing", {"title": "x"}, inactive.to_identity())

    def test_reported_by_unchanged(self, bug_service, users, bug):
        updated = bug_service.update(
            bug.id, {"reported_by": users["admin"].id}, users["admin"].to_identity()
        )
        assert updated.reported_by == users["reporter"].id

    def test_explicit_resolved_at_normalized_to_utc(self, bug_service, users, bug, db_session):
        bug_service.update(
            bug.id,
            {"status": "resolved", "resolved_at": "2030-01-01T10:00:00+05:00"},
            users["admin"].to_identity(),
        )

        db_session.expire_all()
        stored = db_session.get(BugModel, bug.id).to_dict()
        assert stored["resolved_at"] == "2030-01-01T05:00:00+00:00"

    def test_resolved_by_ignored_when_not_resolving(self, bug_service, users, bug):
        updated = bug_service.update(
            bug.id,
            {"status": "in_progress", "resolved_by": "ghost"},
            users["admin"].to_identity(),
        )

        assert updated.status == "in_progress"
        assert updated.resolved_by is None
        assert updated.resolved_at is None

    def test_resolved_by_must_exist_when_resolving(self, bug_service, users, bug):
        with pytest.raises(ValidationError) as exc_info:
            bug_service.update(
                bug.id,
                {"status": "resolved", "resolved_by": "ghost"},
                users["admin"].to_identity(),
            )

        assert exc_info.value.code == "UNKNOWN_IDENTITY"

    def test_reassign_to_unknown_identity(self, bug_service, users, bug):
        with pytest.raises(ValidationError) as exc_info:
            bug_service.update(bug.id, {"assigned_to": "ghost"}, users["reporter"].to_identity())

        assert exc_info.value.code == "UNKNOWN_IDENTITY"

    def test_updated_at_advances(self, bug_service, users, bug):
        before = bug.updated_at

        updated = bug_service.update(bug.id, {"title": "Renamed"}, users["reporter"].to_identity())

        assert updated.updated_at >= before

    def test_status_change_is_audited(self, bug_service, users, bug, db_session):
        bug_service.update(bug.id, {"status": "resolved"}, users["reporter"].to_identity())

        actions = {
            entry.action
            for entry in db_session.query(AuditLogModel).filter_by(entity_id=bug.id)
        }
        assert {"created", "updated", "status_changed"} <= actions

    def test_tag_update_persists(self, bug_service, users, bug, db_session):
        bug_service.update(bug.id, {"tags": ["ui", "save"]}, users["reporter"].to_identity())

        db_session.expire_all()
        assert db_session.get(BugModel, bug.id).tags == ["ui", "save"]
        assert db_session.query(BugTagModel).count() == 2


class TestDelete:
    def test_privileged_delete_removes_comments(self, bug_service, users, db_session):
        reporter = users["reporter"].to_identity()
        bug = bug_service.create(make_payload(tags=["x"]), reporter)
        bug_service.add_comment(bug.id, "first", reporter)

        bug_service.delete(bug.id, users["pm"].to_identity())

        assert db_session.get(BugModel, bug.id) is None
        assert db_session.query(CommentModel).count() == 0
        assert db_session.query(BugTagModel).count() == 0

    def test_reporter_cannot_delete(self, bug_service, users, db_session):
        reporter = users["reporter"].to_identity()
        bug = bug_service.create(make_payload(), reporter)

        with pytest.raises(PermissionDeniedError):
            bug_service.delete(bug.id, reporter)

        assert db_session.get(BugModel, bug.id) is not None

    def test_delete_unknown(self, bug_service, users):
        with pytest.raises(NotFoundError):
            bug_service.delete("missing", users["admin"].to_identity())


class TestComments:
    def test_append_and_order(self, bug_service, users):
        reporter = users["reporter"].to_identity()
        outsider = users["outsider"].to_identity()
        bug = bug_service.create(make_payload(), reporter)

        bug_service.add_comment(bug.id, "first", reporter)
        bug_service.add_comment(bug.id, "second", outsider)
        bug_service.add_comment(bug.id, "third", reporter)

        comments = bug_service.list_comments(bug.id, reporter)
        assert [c["content"] for c in comments] == ["first", "second", "third"]
        assert comments[1]["author"]["username"] == "outsider"

    def test_comments_isolated_per_bug(self, bug_service, users):
        reporter = users["reporter"].to_identity()
        bug_a = bug_service.create(make_payload(title="A"), reporter)
        bug_b = bug_service.create(make_payload(title="B"), reporter)
        bug_service.add_comment(bug_b.id, "on b", reporter)

        bug_service.add_comment(bug_a.id, "on a", reporter)

        assert [c["content"] for c in bug_service.list_comments(bug_b.id, reporter)] == ["on b"]
        assert [c["content"] for c in bug_service.list_comments(bug_a.id, reporter)] == ["on a"]

    def test_empty_comment_rejected(self, bug_service, users):
        reporter = users["reporter"].to_identity()
        bug = bug_service.create(make_payload(), reporter)

        with pytest.raises(ValidationError):
            bug_service.add_comment(bug.id, "   ", reporter)

        assert bug_service.list_comments(bug.id, reporter) == []

    def test_comment_on_unknown_bug(self, bug_service, users):
        with pytest.raises(NotFoundError):
            bug_service.add_comment("missing", "hello", users["reporter"].to_identity())

    def test_bug_dict_includes_comments(self, bug_service, users):
        reporter = users["reporter"].to_identity()
        bug = bug_service.create(make_payload(), reporter)
        bug_service.add_comment(bug.id, "hello", reporter)

        data = bug_service.get(bug.id, reporter).to_dict()

        assert [c["content"] for c in data["comments"]] == ["hello"]
        assert data["reporter"]["username"] == "reporter"
        assert data["age_in_days"] == 0
        assert data["time_to_resolution"] is None
