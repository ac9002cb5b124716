"""
Task endpoints: CRUD, comments, archiving and access control over HTTP
"""

from datetime import timedelta

import pytest

from taskmanager.core.dependencies import get_state_machine
from taskmanager.database import SessionLocal
from taskmanager.main import app
from taskmanager.models import Subtask, TaskComment, TaskPriority, TaskStatus
from taskmanager.services import TaskStateMachine
from taskmanager.utils.timestamps import utcnow
from tests.helpers import auth_headers, future_iso, past_iso


def new_task_payload(**overrides):
    payload = {
        "title": "Prepare slides",
        "description": "Slides for the Monday review",
        "due_date": future_iso(),
    }
    payload.update(overrides)
    return payload


class TestCreateTask:

    def test_create_returns_201_with_creator(self, client, alice, bob):
        response = client.post(
            "/api/tasks",
            json=new_task_payload(
                priority="high",
                assigned_to_id=str(bob.id),
                tags=["review", "  ", "slides "],
                subtasks=[{"title": "outline"}, {"title": "draft", "completed": True}],
            ),
            headers=auth_headers(alice),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["priority"] == "high"
        assert data["created_by"]["email"] == alice.email
        assert data["assigned_to"]["email"] == bob.email
        assert data["tags"] == ["review", "slides"]
        assert data["is_archived"] is False
        assert [s["completed"] for s in data["subtasks"]] == [False, True]
        assert data["subtasks"][1]["completed_at"] is not None
        assert data["comments"] == []

    def test_past_due_date_rejected(self, client, alice):
        response = client.post("/api/tasks", json=new_task_payload(due_date=past_iso()), headers=auth_headers(alice))

        assert response.status_code == 400
        assert response.json()["reason"] == "due-date-in-past"

    def test_unknown_assignee_rejected(self, client, alice):
        response = client.post(
            "/api/tasks",
            json=new_task_payload(assigned_to_id="00000000-0000-0000-0000-000000000000"),
            headers=auth_headers(alice),
        )

        assert response.status_code == 400
        assert response.json()["reason"] == "assignee-not-found"

    @pytest.mark.parametrize("field,value", [
        ("title", ""),
        ("title", "x" * 101),
        ("description", "   "),
        ("description", "x" * 501),
        ("due_date", "not-a-date"),
        ("priority", "critical"),
    ])
    def test_invalid_fields_rejected(self, client, alice, field, value):
        response = client.post("/api/tasks", json=new_task_payload(**{field: value}), headers=auth_headers(alice))

        assert response.status_code == 400
        assert response.json()["reason"] == "validation-failed"

    def test_blank_subtask_title_rejected(self, client, alice):
        response = client.post(
            "/api/tasks",
            json=new_task_payload(subtasks=[{"title": "   "}]),
            headers=auth_headers(alice),
        )

        assert response.status_code == 400
        assert response.json()["reason"] == "validation-failed"

    def test_requires_authentication(self, client):
        response = client.post("/api/tasks", json=new_task_payload())
        assert response.status_code in (401, 403)

    def test_invalid_token_rejected(self, client):
        response = client.get("/api/tasks", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401


class TestReadTask:

    def test_creator_and_assignee_can_read(self, client, make_task, alice, bob):
        task = make_task(alice, assignee=bob)

        for user in (alice, bob):
            response = client.get(f"/api/tasks/{task.id}", headers=auth_headers(user))
            assert response.status_code == 200
            assert response.json()["id"] == str(task.id)

    def test_stranger_gets_403(self, client, make_task, alice, bob, carol):
        task = make_task(alice, assignee=bob)

        response = client.get(f"/api/tasks/{task.id}", headers=auth_headers(carol))

        assert response.status_code == 403
        body = response.json()
        assert body["reason"] == "access-denied"
        assert body["policy_reason"] == "not-owner-or-assignee"

    def test_admin_can_read_any_task(self, client, make_task, admin, alice):
        task = make_task(alice)
        response = client.get(f"/api/tasks/{task.id}", headers=auth_headers(admin))
        assert response.status_code == 200

    def test_missing_task_is_404(self, client, alice):
        response = client.get("/api/tasks/00000000-0000-0000-0000-000000000000", headers=auth_headers(alice))

        assert response.status_code == 404
        assert response.json()["reason"] == "task-not-found"

    def test_malformed_id_is_validation_error(self, client, alice):
        response = client.get("/api/tasks/not-a-uuid", headers=auth_headers(alice))
        assert response.status_code == 400


class TestListTasks:

    def test_user_sees_created_and_assigned_only(self, client, make_task, alice, bob, carol):
        own = make_task(alice, title="Mine")
        assigned = make_task(bob, assignee=alice, title="Given to me")
        make_task(carol, title="Someone else's")

        response = client.get("/api/tasks", headers=auth_headers(alice))

        assert response.status_code == 200
        data = response.json()
        assert {t["id"] for t in data["tasks"]} == {str(own.id), str(assigned.id)}
        assert data["total"] == 2
        assert data["pages"] == 1

    def test_admin_sees_everything_and_filters_by_assignee(self, client, make_task, admin, alice, bob):
        make_task(alice)
        target = make_task(alice, assignee=bob)

        everything = client.get("/api/tasks", headers=auth_headers(admin)).json()
        filtered = client.get(f"/api/tasks?assigned_to={bob.id}", headers=auth_headers(admin)).json()

        assert everything["total"] == 2
        assert [t["id"] for t in filtered["tasks"]] == [str(target.id)]

    def test_archived_hidden_unless_requested(self, client, make_task, alice):
        make_task(alice, title="Active")
        make_task(alice, title="Old", is_archived=True)

        default = client.get("/api/tasks", headers=auth_headers(alice)).json()
        with_archived = client.get("/api/tasks?include_archived=true", headers=auth_headers(alice)).json()

        assert [t["title"] for t in default["tasks"]] == ["Active"]
        assert with_archived["total"] == 2

    def test_status_priority_and_search_filters(self, client, make_task, alice):
        make_task(alice, title="Fix login bug", priority=TaskPriority.URGENT, status=TaskStatus.IN_PROGRESS)
        make_task(alice, title="Write docs", priority=TaskPriority.LOW)

        headers = auth_headers(alice)
        by_status = client.get("/api/tasks?status=in-progress", headers=headers).json()
        by_priority = client.get("/api/tasks?priority=low", headers=headers).json()
        by_search = client.get("/api/tasks?search=login", headers=headers).json()

        assert [t["title"] for t in by_status["tasks"]] == ["Fix login bug"]
        assert [t["title"] for t in by_priority["tasks"]] == ["Write docs"]
        assert [t["title"] for t in by_search["tasks"]] == ["Fix login bug"]

    def test_pagination(self, client, make_task, alice):
        for i in range(3):
            make_task(alice, title=f"Task {i}")

        data = client.get("/api/tasks?page=2&limit=2", headers=auth_headers(alice)).json()

        assert data["count"] == 1
        assert data["total"] == 3
        assert data["pages"] == 2
        assert data["page"] == 2

    @pytest.mark.parametrize("query", ["page=0", "limit=0", "limit=101", "status=bogus"])
    def test_bad_query_parameters(self, client, alice, query):
        response = client.get(f"/api/tasks?{query}", headers=auth_headers(alice))
        assert response.status_code == 400


class TestUpdateTask:

    def test_assignee_can_update_status(self, client, make_task, alice, bob):
        task = make_task(alice, assignee=bob)

        response = client.put(f"/api/tasks/{task.id}", json={"status": "in-progress"}, headers=auth_headers(bob))

        assert response.status_code == 200
        assert response.json()["status"] == "in-progress"

    def test_any_status_may_follow_any_other(self, client, make_task, alice):
        task = make_task(alice)
        headers = auth_headers(alice)

        for value in ("completed", "cancelled", "pending"):
            response = client.put(f"/api/tasks/{task.id}", json={"status": value}, headers=headers)
            assert response.json()["status"] == value

    def test_bogus_status_rejected_and_unchanged(self, client, make_task, alice):
        task = make_task(alice)

        response = client.put(f"/api/tasks/{task.id}", json={"status": "bogus"}, headers=auth_headers(alice))

        assert response.status_code == 400
        assert response.json()["reason"] == "validation-failed"
        after = client.get(f"/api/tasks/{task.id}", headers=auth_headers(alice)).json()
        assert after["status"] == "pending"

    def test_permission_checked_before_field_validation(self, client, make_task, alice, carol):
        task = make_task(alice)

        response = client.put(f"/api/tasks/{task.id}", json={"status": "bogus"}, headers=auth_headers(carol))

        assert response.status_code == 403

    @pytest.mark.parametrize("changes", [
        {"title": ""},
        {"title": "x" * 101},
        {"description": "   "},
        {"priority": "critical"},
    ])
    def test_stranger_with_invalid_fields_gets_403(self, client, make_task, alice, carol, changes):
        task = make_task(alice)

        response = client.put(f"/api/tasks/{task.id}", json=changes, headers=auth_headers(carol))

        assert response.status_code == 403
        assert response.json()["reason"] == "access-denied"

    def test_missing_task_with_invalid_title_gets_404(self, client, alice):
        response = client.put(
            "/api/tasks/00000000-0000-0000-0000-000000000000",
            json={"title": "x" * 101},
            headers=auth_headers(alice),
        )

        assert response.status_code == 404
        assert response.json()["reason"] == "task-not-found"

    @pytest.mark.parametrize("changes", [
        {"title": ""},
        {"title": "x" * 101},
        {"description": "   "},
        {"description": "x" * 501},
        {"priority": "critical"},
    ])
    def test_invalid_fields_rejected_for_owner(self, client, make_task, alice, changes):
        task = make_task(alice, title="Original")

        response = client.put(f"/api/tasks/{task.id}", json=changes, headers=auth_headers(alice))

        assert response.status_code == 400
        assert response.json()["reason"] == "validation-failed"
        after = client.get(f"/api/tasks/{task.id}", headers=auth_headers(alice)).json()
        assert after["title"] == "Original"
        assert after["priority"] == "medium"

    def test_title_and_description_are_trimmed(self, client, make_task, alice):
        task = make_task(alice)

        response = client.put(
            f"/api/tasks/{task.id}",
            json={"title": "  Tidy title ", "description": " Tidy body  ", "priority": "urgent"},
            headers=auth_headers(alice),
        )

        data = response.json()
        assert data["title"] == "Tidy title"
        assert data["description"] == "Tidy body"
        assert data["priority"] == "urgent"

    def test_existence_checked_before_permission(self, client, carol):
        response = client.put(
            "/api/tasks/00000000-0000-0000-0000-000000000000",
            json={"title": "Hijack"},
            headers=auth_headers(carol),
        )
        assert response.status_code == 404

    def test_past_due_date_rejected(self, client, make_task, alice):
        task = make_task(alice)

        response = client.put(f"/api/tasks/{task.id}", json={"due_date": past_iso()}, headers=auth_headers(alice))

        assert response.status_code == 400
        assert response.json()["reason"] == "due-date-in-past"

    def test_overdue_task_can_change_other_fields(self, client, make_task, alice):
        task = make_task(alice, due_date=utcnow() - timedelta(days=2))

        response = client.put(f"/api/tasks/{task.id}", json={"title": "Still relevant"}, headers=auth_headers(alice))

        assert response.status_code == 200
        assert response.json()["title"] == "Still relevant"

    def test_reassign_and_unassign(self, client, make_task, alice, bob):
        task = make_task(alice)
        headers = auth_headers(alice)

        assigned = client.put(f"/api/tasks/{task.id}", json={"assigned_to_id": str(bob.id)}, headers=headers)
        assert assigned.json()["assigned_to"]["id"] == str(bob.id)

        unassigned = client.put(f"/api/tasks/{task.id}", json={"assigned_to_id": None}, headers=headers)
        assert unassigned.json()["assigned_to_id"] is None
        assert unassigned.json()["assigned_to"] is None

    def test_unknown_assignee_rejected(self, client, make_task, alice):
        task = make_task(alice)

        response = client.put(
            f"/api/tasks/{task.id}",
            json={"assigned_to_id": "00000000-0000-0000-0000-000000000000"},
            headers=auth_headers(alice),
        )

        assert response.status_code == 400
        assert response.json()["reason"] == "assignee-not-found"

    def test_subtask_completion_timestamps(self, client, make_task, alice):
        task = make_task(alice)
        headers = auth_headers(alice)

        opened = client.put(f"/api/tasks/{task.id}", json={"subtasks": [{"title": "step"}]}, headers=headers)
        assert opened.json()["subtasks"][0]["completed_at"] is None

        done = client.put(
            f"/api/tasks/{task.id}",
            json={"subtasks": [{"title": "step", "completed": True}]},
            headers=headers,
        )
        stamp = done.json()["subtasks"][0]["completed_at"]
        assert stamp is not None

        again = client.put(
            f"/api/tasks/{task.id}",
            json={"subtasks": [{"title": "step", "completed": True}]},
            headers=headers,
        )
        assert again.json()["subtasks"][0]["completed_at"] == stamp

    def test_creator_field_is_ignored(self, client, make_task, alice, bob):
        task = make_task(alice)

        response = client.put(
            f"/api/tasks/{task.id}",
            json={"created_by_id": str(bob.id), "title": "Renamed"},
            headers=auth_headers(alice),
        )

        assert response.status_code == 200
        assert response.json()["created_by_id"] == str(alice.id)

    def test_pinned_clock_decides_due_date_validity(self, client, make_task, alice):
        task = make_task(alice)
        app.dependency_overrides[get_state_machine] = lambda: TaskStateMachine(clock=lambda: utcnow() + timedelta(days=30))
        try:
            response = client.put(
                f"/api/tasks/{task.id}",
                json={"due_date": future_iso(days=10)},
                headers=auth_headers(alice),
            )
        finally:
            app.dependency_overrides.pop(get_state_machine, None)

        assert response.status_code == 400
        assert response.json()["reason"] == "due-date-in-past"


class TestDeleteTask:

    def test_creator_can_delete(self, client, make_task, alice):
        task = make_task(alice)

        response = client.delete(f"/api/tasks/{task.id}", headers=auth_headers(alice))

        assert response.status_code == 200
        assert client.get(f"/api/tasks/{task.id}", headers=auth_headers(alice)).status_code == 404

    def test_assignee_cannot_delete(self, client, make_task, alice, bob):
        task = make_task(alice, assignee=bob)

        response = client.delete(f"/api/tasks/{task.id}", headers=auth_headers(bob))

        assert response.status_code == 403
        assert response.json()["policy_reason"] == "not-creator-or-admin"

    def test_admin_can_delete(self, client, make_task, admin, alice):
        task = make_task(alice)
        assert client.delete(f"/api/tasks/{task.id}", headers=auth_headers(admin)).status_code == 200

    def test_delete_removes_subtasks_and_comments(self, client, make_task, alice):
        task = make_task(alice)
        headers = auth_headers(alice)
        client.put(f"/api/tasks/{task.id}", json={"subtasks": [{"title": "step"}]}, headers=headers)
        client.post(f"/api/tasks/{task.id}/comments", json={"text": "note"}, headers=headers)

        assert client.delete(f"/api/tasks/{task.id}", headers=headers).status_code == 200

        with SessionLocal() as session:
            assert session.query(Subtask).count() == 0
            assert session.query(TaskComment).count() == 0


class TestComments:

    def test_assignee_comment_is_appended(self, client, make_task, alice, bob):
        task = make_task(alice, assignee=bob)

        response = client.post(f"/api/tasks/{task.id}/comments", json={"text": "  on it  "}, headers=auth_headers(bob))

        assert response.status_code == 200
        comments = response.json()["comments"]
        assert len(comments) == 1
        assert comments[0]["text"] == "on it"
        assert comments[0]["user"]["email"] == bob.email

    @pytest.mark.parametrize("text", ["", "    ", "x" * 501])
    def test_empty_or_long_comment_rejected(self, client, make_task, alice, text):
        task = make_task(alice)

        response = client.post(f"/api/tasks/{task.id}/comments", json={"text": text}, headers=auth_headers(alice))

        assert response.status_code == 400
        assert response.json()["reason"] == "empty-comment"

    def test_stranger_cannot_comment(self, client, make_task, alice, carol):
        task = make_task(alice)

        response = client.post(f"/api/tasks/{task.id}/comments", json={"text": "hi"}, headers=auth_headers(carol))

        assert response.status_code == 403

    def test_comment_on_missing_task(self, client, alice):
        response = client.post(
            "/api/tasks/00000000-0000-0000-0000-000000000000/comments",
            json={"text": "hello"},
            headers=auth_headers(alice),
        )
        assert response.status_code == 404

    def test_comment_and_status_change_both_persist(self, client, make_task, alice, bob):
        task = make_task(alice, assignee=bob)

        client.post(f"/api/tasks/{task.id}/comments", json={"text": "started"}, headers=auth_headers(bob))
        client.put(f"/api/tasks/{task.id}", json={"status": "completed"}, headers=auth_headers(alice))

        data = client.get(f"/api/tasks/{task.id}", headers=auth_headers(alice)).json()
        assert data["status"] == "completed"
        assert [c["text"] for c in data["comments"]] == ["started"]

    def test_deleted_author_renders_as_null(self, client, make_task, admin, alice, bob):
        task = make_task(alice, assignee=bob)
        client.post(f"/api/tasks/{task.id}/comments", json={"text": "handing back"}, headers=auth_headers(bob))
        client.put(f"/api/tasks/{task.id}", json={"assigned_to_id": None}, headers=auth_headers(alice))
        assert client.delete(f"/api/admin/users/{bob.id}", headers=auth_headers(admin)).status_code == 200

        data = client.get(f"/api/tasks/{task.id}", headers=auth_headers(alice)).json()

        assert data["comments"][0]["user_id"] == str(bob.id)
        assert data["comments"][0]["user"] is None


class TestArchive:

    def test_creator_toggles_archive(self, client, make_task, alice):
        task = make_task(alice)
        headers = auth_headers(alice)

        archived = client.put(f"/api/tasks/{task.id}/archive", headers=headers)
        restored = client.put(f"/api/tasks/{task.id}/archive", headers=headers)

        assert archived.json()["is_archived"] is True
        assert restored.json()["is_archived"] is False

    def test_assignee_cannot_archive(self, client, make_task, alice, bob):
        task = make_task(alice, assignee=bob)

        response = client.put(f"/api/tasks/{task.id}/archive", headers=auth_headers(bob))

        assert response.status_code == 403

    def test_archive_missing_task(self, client, alice):
        response = client.put("/api/tasks/00000000-0000-0000-0000-000000000000/archive", headers=auth_headers(alice))
        assert response.status_code == 404
