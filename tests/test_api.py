"""
API tests for the bug and user endpoints.

Verifies routing, identity resolution from X-User-Id and the mapping of core
errors onto status codes and the error envelope.
"""

import pytest


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


def headers(user) -> dict:
    return {"X-User-Id": user.id}


@pytest.fixture
def created_bug(client, users):
    response = client.post("/api/bugs", json=make_payload(), headers=headers(users["reporter"]))
    assert response.status_code == 201
    return response.json()["bug"]


class TestSystem:
    def test_healthz(self, client):
        response = client.get("/healthz")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "ok"}

    def test_version(self, client):
        response = client.get("/version")

        assert response.status_code == 200
        assert "version" in response.json()


class TestAuthentication:
    def test_missing_header(self, client):
        response = client.get("/api/bugs")

        assert response.status_code == 401
        assert response.json()["error"]["kind"] == "authentication_error"

    def test_unknown_identity(self, client):
        response = client.get("/api/bugs", headers={"X-User-Id": "ghost"})

        assert response.status_code == 401

    def test_inactive_identity(self, client, make_user):
        inactive = make_user(is_active=False)

        response = client.get("/api/bugs", headers=headers(inactive))

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "ACCOUNT_INACTIVE"


class TestBugEndpoints:
    def test_create(self, created_bug, users):
        assert created_bug["status"] == "open"
        assert created_bug["resolved_at"] is None
        assert created_bug["reported_by"] == users["reporter"].id
        assert created_bug["reporter"]["username"] == "reporter"

    def test_create_validation_error(self, client, users):
        payload = make_payload()
        del payload["title"]

        response = client.post("/api/bugs", json=payload, headers=headers(users["reporter"]))

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["kind"] == "validation_error"
        assert any(d["field"].endswith("title") for d in error["details"])

    def test_get(self, client, users, created_bug):
        response = client.get(f"/api/bugs/{created_bug['id']}", headers=headers(users["outsider"]))

        assert response.status_code == 200
        assert response.json()["title"] == "Crash on save"
        assert response.json()["comments"] == []

    def test_get_unknown(self, client, users):
        response = client.get("/api/bugs/missing", headers=headers(users["reporter"]))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "BUG_NOT_FOUND"

    def test_resolution_lifecycle(self, client, users, created_bug):
        url = f"/api/bugs/{created_bug['id']}"

        resolved = client.put(url, json={"status": "resolved"}, headers=headers(users["reporter"]))
        assert resolved.status_code == 200
        assert resolved.json()["bug"]["resolved_by"] == users["reporter"].id
        assert resolved.json()["bug"]["resolved_at"] is not None

        reopened = client.put(url, json={"status": "reopened"}, headers=headers(users["admin"]))
        assert reopened.json()["bug"]["resolved_at"] is None
        assert reopened.json()["bug"]["resolved_by"] is None

    def test_update_forbidden(self, client, users, created_bug):
        url = f"/api/bugs/{created_bug['id']}"

        response = client.put(url, json={"title": "Mine now"}, headers=headers(users["outsider"]))

        assert response.status_code == 403
        assert response.json()["error"]["kind"] == "permission_error"
        assert client.get(url, headers=headers(users["reporter"])).json()["title"] == "Crash on save"

    def test_update_null_required_field(self, client, users, created_bug):
        response = client.put(
            f"/api/bugs/{created_bug['id']}",
            json={"title": None},
            headers=headers(users["reporter"]),
        )

        assert response.status_code == 400

    def test_delete(self, client, users, created_bug):
        url = f"/api/bugs/{created_bug['id']}"

        assert client.delete(url, headers=headers(users["reporter"])).status_code == 403
        assert client.delete(url, headers=headers(users["pm"])).status_code == 200
        assert client.get(url, headers=headers(users["pm"])).status_code == 404

    def test_list(self, client, users):
        for i in range(3):
            client.post(
                "/api/bugs",
                json=make_payload(title=f"Login issue {i}"),
                headers=headers(users["reporter"]),
            )

        response = client.get(
            "/api/bugs",
            params={"search": "LOGIN", "page_size": 2, "sort_by": "title", "sort_order": "asc"},
            headers=headers(users["outsider"]),
        )

        body = response.json()
        assert response.status_code == 200
        assert body["total_items"] == 3
        assert body["total_pages"] == 2
        assert [b["title"] for b in body["items"]] == ["Login issue 0", "Login issue 1"]
        assert body["has_next"] is True

    def test_list_invalid_sort(self, client, users):
        response = client.get(
            "/api/bugs", params={"sort_by": "password"}, headers=headers(users["reporter"])
        )

        assert response.status_code == 400

    def test_list_page_size_cap(self, client, users):
        response = client.get(
            "/api/bugs", params={"page_size": 1000}, headers=headers(users["reporter"])
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "PAGE_SIZE_TOO_LARGE"

    def test_list_zero_page_size_rejected(self, client, users):
        response = client.get(
            "/api/bugs", params={"page_size": 0}, headers=headers(users["reporter"])
        )

        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "validation_error"

    def test_stats_overview(self, client, users, created_bug):
        response = client.get("/api/bugs/stats/overview", headers=headers(users["outsider"]))

        assert response.status_code == 200
        overview = response.json()["overview"]
        assert overview["total_bugs"] == 1
        assert overview["critical_bugs"] == 1


class TestCommentEndpoints:
    def test_add_and_list(self, client, users, created_bug):
        url = f"/api/bugs/{created_bug['id']}/comments"

        first = client.post(url, json={"content": "Seen on 1.2"}, headers=headers(users["outsider"]))
        client.post(url, json={"content": "Fixing"}, headers=headers(users["assignee"]))

        assert first.status_code == 201
        assert first.json()["comment"]["author"]["username"] == "outsider"
        comments = client.get(url, headers=headers(users["reporter"])).json()
        assert [c["content"] for c in comments] == ["Seen on 1.2", "Fixing"]

    def test_empty_comment(self, client, users, created_bug):
        response = client.post(
            f"/api/bugs/{created_bug['id']}/comments",
            json={"content": "  "},
            headers=headers(users["reporter"]),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "COMMENT_EMPTY"


class TestUserEndpoints:
    def test_profile(self, client, users, created_bug):
        response = client.get("/api/users/profile", headers=headers(users["reporter"]))

        assert response.status_code == 200
        assert response.json()["stats"]["reported"] == {"open": 1}

    def test_update_profile_conflict(self, client, users):
        response = client.put(
            "/api/users/profile", json={"username": "admin"}, headers=headers(users["reporter"])
        )

        assert response.status_code == 409
        assert response.json()["error"]["kind"] == "conflict"

    def test_directory(self, client, users):
        assert client.get("/api/users", headers=headers(users["reporter"])).status_code == 403

        response = client.get(
            "/api/users", params={"role": "admin"}, headers=headers(users["pm"])
        )
        assert [u["username"] for u in response.json()["items"]] == ["admin"]

    def test_directory_zero_page_size_rejected(self, client, users):
        response = client.get(
            "/api/users", params={"page_size": 0}, headers=headers(users["admin"])
        )

        assert response.status_code == 400

    def test_detail(self, client, users):
        response = client.get(f"/api/users/{users['reporter'].id}", headers=headers(users["admin"]))

        assert response.status_code == 200
        assert response.json()["user"]["username"] == "reporter"

    def test_change_role(self, client, users):
        url = f"/api/users/{users['reporter'].id}/role"

        response = client.put(url, json={"role": "tester"}, headers=headers(users["admin"]))

        assert response.status_code == 200
        assert response.json()["user"]["role"] == "tester"

    def test_change_own_role_forbidden(self, client, users):
        url = f"/api/users/{users['admin'].id}/role"

        response = client.put(url, json={"role": "developer"}, headers=headers(users["admin"]))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "SELF_MODIFICATION"

    def test_deactivate_locks_out(self, client, users):
        url = f"/api/users/{users['reporter'].id}/status"

        response = client.put(url, json={"is_active": False}, headers=headers(users["admin"]))
        assert response.status_code == 200

        locked = client.get("/api/bugs", headers=headers(users["reporter"]))
        assert locked.status_code == 401
