import uuid
from dataclasses import replace
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from todo_api.main import create_app
from todo_api.settings import get_settings

settings = replace(
    get_settings(),
    persistence_backend="memory",
    bcrypt_rounds=4,
    jwt_secret="test-secret",
    max_page_limit=50,
)
client = TestClient(create_app(settings))


def auth_headers(name="Todo Owner"):
    """Register a fresh user and return (headers, user_id)."""
    email = f"owner-{uuid.uuid4().hex[:10]}@example.com"
    res = client.post("/api/auth/register", json={"name": name, "email": email, "password": "password123"})
    assert res.status_code == 201
    token = client.post("/api/auth/login", json={"email": email, "password": "password123"}).json()["token"]
    return {"Authorization": f"Bearer {token}"}, res.json()["data"]["id"]


def create_todo(headers, **fields):
    payload = {"title": "Test Task"}
    payload.update(fields)
    res = client.post("/api/todos", json=payload, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]


def assert_todo_shape(todo: dict):
    for key in ["id", "title", "status", "priority", "isCompleted", "ownerId", "createdAt", "updatedAt"]:
        assert key in todo
    assert "description" in todo
    assert "dueDate" in todo
    assert isinstance(todo["id"], str)
    assert isinstance(todo["isCompleted"], bool)
    datetime.fromisoformat(todo["createdAt"].replace("Z", "+00:00"))
    datetime.fromisoformat(todo["updatedAt"].replace("Z", "+00:00"))


class TestTodosCRUD:
    def test_create_todo_defaults(self):
        headers, user_id = auth_headers()
        res = client.post("/api/todos", json={"title": "Buy milk", "priority": "high"}, headers=headers)
        assert res.status_code == 201
        body = res.json()
        assert body["success"] is True
        assert body["message"] == "Todo created successfully"
        todo = body["data"]
        assert_todo_shape(todo)
        assert todo["title"] == "Buy milk"
        assert todo["priority"] == "high"
        assert todo["status"] == "pending"
        assert todo["isCompleted"] is False
        assert todo["description"] is None
        assert todo["dueDate"] is None
        assert todo["ownerId"] == user_id

    def test_create_ignores_is_completed(self):
        headers, _ = auth_headers()
        todo = create_todo(headers, title="X", isCompleted=True)
        assert todo["isCompleted"] is False
        assert todo["status"] == "pending"

        # still validated like any other field
        res = client.post("/api/todos", json={"title": "X", "isCompleted": "maybe"}, headers=headers)
        assert res.status_code == 400
        assert res.json()["errors"] == [{"field": "isCompleted", "message": "isCompleted must be a boolean value"}]

    def test_responses_without_message_omit_the_key(self):
        headers, _ = auth_headers()
        todo = create_todo(headers)
        body = client.get(f"/api/todos/{todo['id']}", headers=headers).json()
        assert body["success"] is True
        assert "message" not in body
        body = client.get("/api/todos", headers=headers).json()
        assert "message" not in body
        assert "pagination" in body

    def test_create_trims_text_fields(self):
        headers, _ = auth_headers()
        todo = create_todo(headers, title="  Trim me  ", description="  padded  ")
        assert todo["title"] == "Trim me"
        assert todo["description"] == "padded"

    def test_create_with_due_date_string(self):
        headers, _ = auth_headers()
        todo = create_todo(headers, title="Pay bills", dueDate="2099-12-25")
        assert todo["dueDate"].startswith("2099-12-25")

    def test_owner_cannot_be_set_by_client(self):
        headers, user_id = auth_headers()
        todo = create_todo(headers, ownerId="0123456789abcdef01234567")
        assert todo["ownerId"] == user_id

    def test_get_todo_and_not_found(self):
        headers, _ = auth_headers()
        todo = create_todo(headers, title="Read book")

        res_get = client.get(f"/api/todos/{todo['id']}", headers=headers)
        assert res_get.status_code == 200
        assert res_get.json()["data"]["title"] == "Read book"

        res_404 = client.get("/api/todos/0123456789abcdef01234567", headers=headers)
        assert res_404.status_code == 404
        assert res_404.json() == {"message": "Todo not found"}

    def test_malformed_id_is_not_found(self):
        headers, _ = auth_headers()
        for method in ("get", "put", "delete", "patch"):
            path = "/api/todos/not-an-object-id" + ("/toggle" if method == "patch" else "")
            kwargs = {"json": {"title": "x"}} if method == "put" else {}
            res = getattr(client, method)(path, headers=headers, **kwargs)
            assert res.status_code == 404, method
            assert res.json() == {"message": "Todo not found"}

    def test_update_leaves_unspecified_fields_unchanged(self):
        headers, _ = auth_headers()
        todo = create_todo(headers, title="Keep me", description="Same", dueDate="2099-01-01", priority="low")

        res = client.put(f"/api/todos/{todo['id']}", json={"priority": "high"}, headers=headers)
        assert res.status_code == 200
        body = res.json()
        assert body["message"] == "Todo updated successfully"
        updated = body["data"]
        assert updated["priority"] == "high"
        assert updated["title"] == "Keep me"
        assert updated["description"] == "Same"
        assert updated["dueDate"] == todo["dueDate"]
        assert updated["status"] == todo["status"]
        assert updated["createdAt"] == todo["createdAt"]

    def test_update_null_clears_optional_fields(self):
        headers, _ = auth_headers()
        todo = create_todo(headers, description="Temporary", dueDate="2099-01-01")
        res = client.put(f"/api/todos/{todo['id']}", json={"description": None, "dueDate": None}, headers=headers)
        assert res.status_code == 200
        updated = res.json()["data"]
        assert updated["description"] is None
        assert updated["dueDate"] is None

    def test_update_does_not_accept_null_title(self):
        headers, _ = auth_headers()
        todo = create_todo(headers)
        res = client.put(f"/api/todos/{todo['id']}", json={"title": None}, headers=headers)
        assert res.status_code == 400
        assert res.json()["errors"] == [
            {"field": "title", "message": "Title must be between 1 and 100 characters"}
        ]

    def test_update_is_completed_and_status(self):
        headers, _ = auth_headers()
        todo = create_todo(headers)
        res = client.put(
            f"/api/todos/{todo['id']}",
            json={"status": "in-progress", "isCompleted": True},
            headers=headers,
        )
        assert res.status_code == 200
        assert res.json()["data"]["status"] == "in-progress"
        assert res.json()["data"]["isCompleted"] is True

    def test_update_unknown_todo(self):
        headers, _ = auth_headers()
        res = client.put("/api/todos/0123456789abcdef01234567", json={"title": "Nope"}, headers=headers)
        assert res.status_code == 404

    def test_delete_todo(self):
        headers, _ = auth_headers()
        todo = create_todo(headers, title="ToDelete")

        res_del = client.delete(f"/api/todos/{todo['id']}", headers=headers)
        assert res_del.status_code == 200
        assert res_del.json() == {"success": True, "message": "Todo deleted successfully"}

        assert client.get(f"/api/todos/{todo['id']}", headers=headers).status_code == 404
        res_again = client.delete(f"/api/todos/{todo['id']}", headers=headers)
        assert res_again.status_code == 404
        assert res_again.json() == {"message": "Todo not found"}


class TestToggle:
    def test_toggle_sets_completed_then_pending(self):
        headers, _ = auth_headers()
        todo = create_todo(headers)

        first = client.patch(f"/api/todos/{todo['id']}/toggle", headers=headers)
        assert first.status_code == 200
        assert first.json()["message"] == "Todo status toggled successfully"
        assert first.json()["data"]["isCompleted"] is True
        assert first.json()["data"]["status"] == "completed"

        second = client.patch(f"/api/todos/{todo['id']}/toggle", headers=headers)
        assert second.json()["data"]["isCompleted"] is False
        assert second.json()["data"]["status"] == "pending"

    def test_double_toggle_from_in_progress_lands_on_pending(self):
        headers, _ = auth_headers()
        todo = create_todo(headers, status="in-progress")
        assert todo["isCompleted"] is False

        client.patch(f"/api/todos/{todo['id']}/toggle", headers=headers)
        res = client.patch(f"/api/todos/{todo['id']}/toggle", headers=headers)
        data = res.json()["data"]
        assert data["isCompleted"] is False
        assert data["status"] == "pending"


class TestOwnership:
    def test_other_user_is_forbidden(self):
        owner_headers, _ = auth_headers("Owner")
        other_headers, _ = auth_headers("Intruder")
        todo = create_todo(owner_headers, title="Private", priority="low")
        path = f"/api/todos/{todo['id']}"

        res = client.get(path, headers=other_headers)
        assert res.status_code == 403
        assert res.json() == {"message": "Not authorized to access this todo"}
        res = client.put(path, json={"title": "Hijacked"}, headers=other_headers)
        assert res.status_code == 403
        assert res.json() == {"message": "Not authorized to update this todo"}
        res = client.patch(f"{path}/toggle", headers=other_headers)
        assert res.status_code == 403
        assert res.json() == {"message": "Not authorized to update this todo"}
        res = client.delete(path, headers=other_headers)
        assert res.status_code == 403
        assert res.json() == {"message": "Not authorized to delete this todo"}

        # The owner's todo is unchanged and still reachable
        res = client.get(path, headers=owner_headers)
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["title"] == "Private"
        assert data["isCompleted"] is False

    def test_list_is_scoped_to_caller(self):
        a_headers, a_id = auth_headers("Alice")
        b_headers, _ = auth_headers("Bob")
        create_todo(a_headers, title="A1")
        create_todo(b_headers, title="B1")
        create_todo(b_headers, title="B2")

        res = client.get("/api/todos", headers=a_headers)
        assert res.status_code == 200
        items = res.json()["data"]
        assert [t["title"] for t in items] == ["A1"]
        assert all(t["ownerId"] == a_id for t in items)


class TestAuthRequired:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("post", "/api/todos"),
            ("get", "/api/todos"),
            ("get", "/api/todos/0123456789abcdef01234567"),
            ("put", "/api/todos/0123456789abcdef01234567"),
            ("delete", "/api/todos/0123456789abcdef01234567"),
            ("patch", "/api/todos/0123456789abcdef01234567/toggle"),
        ],
    )
    def test_missing_token(self, method, path):
        kwargs = {"json": {"title": "x"}} if method in ("post", "put") else {}
        res = getattr(client, method)(path, **kwargs)
        assert res.status_code == 401
        assert res.json() == {"message": "Not authorized, no token"}

    def test_missing_token_wins_over_invalid_body(self):
        res = client.post("/api/todos", json={"title": ""})
        assert res.status_code == 401


class TestListPaginationFilteringSorting:
    def test_pagination_over_25_items(self):
        headers, _ = auth_headers()
        for i in range(25):
            create_todo(headers, title=f"Task {i}")

        page1 = client.get("/api/todos?page=1&limit=10", headers=headers).json()
        assert len(page1["data"]) == 10
        assert page1["pagination"] == {
            "currentPage": 1,
            "totalPages": 3,
            "totalItems": 25,
            "itemsPerPage": 10,
        }

        page3 = client.get("/api/todos?page=3&limit=10", headers=headers).json()
        assert len(page3["data"]) == 5
        assert page3["pagination"]["currentPage"] == 3

        page4 = client.get("/api/todos?page=4&limit=10", headers=headers).json()
        assert page4["data"] == []

        ids = {t["id"] for p in (1, 2, 3) for t in client.get(f"/api/todos?page={p}", headers=headers).json()["data"]}
        assert len(ids) == 25

    def test_default_page_and_limit(self):
        headers, _ = auth_headers()
        for i in range(12):
            create_todo(headers, title=f"Task {i}")
        body = client.get("/api/todos", headers=headers).json()
        assert len(body["data"]) == 10
        assert body["pagination"]["currentPage"] == 1
        assert body["pagination"]["itemsPerPage"] == 10
        assert body["pagination"]["totalPages"] == 2

    def test_empty_list(self):
        headers, _ = auth_headers()
        body = client.get("/api/todos", headers=headers).json()
        assert body["success"] is True
        assert body["data"] == []
        assert body["pagination"]["totalItems"] == 0
        assert body["pagination"]["totalPages"] == 0

    def test_limit_is_capped(self):
        headers, _ = auth_headers()
        create_todo(headers)
        body = client.get("/api/todos?limit=1000", headers=headers).json()
        assert body["pagination"]["itemsPerPage"] == settings.max_page_limit

    def test_invalid_page_and_limit(self):
        headers, _ = auth_headers()
        res = client.get("/api/todos?page=0&limit=abc", headers=headers)
        assert res.status_code == 400
        body = res.json()
        assert body["message"] == "Validation failed"
        assert [e["field"] for e in body["errors"]] == ["page", "limit"]

    def test_filter_by_status(self):
        headers, _ = auth_headers()
        create_todo(headers, title="Done", status="completed")
        create_todo(headers, title="Doing", status="in-progress")
        create_todo(headers, title="Todo")

        body = client.get("/api/todos?status=completed", headers=headers).json()
        assert [t["title"] for t in body["data"]] == ["Done"]
        assert all(t["status"] == "completed" for t in body["data"])
        assert body["pagination"]["totalItems"] == 1

    def test_filter_by_priority_and_status(self):
        headers, _ = auth_headers()
        create_todo(headers, title="High pending", priority="high")
        create_todo(headers, title="High done", priority="high", status="completed")
        create_todo(headers, title="Low pending", priority="low")

        body = client.get("/api/todos?priority=high&status=pending", headers=headers).json()
        assert [t["title"] for t in body["data"]] == ["High pending"]

    def test_default_sort_is_newest_first(self):
        headers, _ = auth_headers()
        for i in range(5):
            create_todo(headers, title=f"Task {i}")
        items = client.get("/api/todos", headers=headers).json()["data"]
        created = [datetime.fromisoformat(t["createdAt"].replace("Z", "+00:00")) for t in items]
        assert created == sorted(created, reverse=True)

    def test_sort_by_title_ascending(self):
        headers, _ = auth_headers()
        for title in ("banana", "cherry", "apple"):
            create_todo(headers, title=title)
        items = client.get("/api/todos?sortBy=title&sortOrder=asc", headers=headers).json()["data"]
        assert [t["title"] for t in items] == ["apple", "banana", "cherry"]

    def test_sort_by_is_completed(self):
        headers, _ = auth_headers()
        done = create_todo(headers, title="Done")
        create_todo(headers, title="Open")
        client.patch(f"/api/todos/{done['id']}/toggle", headers=headers)

        asc = client.get("/api/todos?sortBy=isCompleted&sortOrder=asc", headers=headers).json()["data"]
        assert [(t["title"], t["isCompleted"]) for t in asc] == [("Open", False), ("Done", True)]
        desc = client.get("/api/todos?sortBy=isCompleted&sortOrder=desc", headers=headers).json()["data"]
        assert [(t["title"], t["isCompleted"]) for t in desc] == [("Done", True), ("Open", False)]

    def test_sort_by_description(self):
        headers, _ = auth_headers()
        create_todo(headers, title="Second", description="b")
        create_todo(headers, title="First", description="a")
        items = client.get("/api/todos?sortBy=description&sortOrder=asc", headers=headers).json()["data"]
        assert [t["title"] for t in items] == ["First", "Second"]

    def test_unknown_sort_field_falls_back_to_created_at(self):
        headers, _ = auth_headers()
        for i in range(3):
            create_todo(headers, title=f"Task {i}")
        res = client.get("/api/todos?sortBy=passwordHash&sortOrder=asc", headers=headers)
        assert res.status_code == 200
        assert [t["title"] for t in res.json()["data"]] == ["Task 0", "Task 1", "Task 2"]

    def test_invalid_sort_order(self):
        headers, _ = auth_headers()
        res = client.get("/api/todos?sortOrder=sideways", headers=headers)
        assert res.status_code == 400
        assert res.json() == {
            "message": "Validation failed",
            "errors": [{"field": "sortOrder", "message": "sortOrder must be 'asc' or 'desc'"}],
        }


class TestValidationErrors:
    def test_create_reports_all_invalid_fields(self):
        headers, _ = auth_headers()
        payload = {
            "title": "   ",
            "description": "x" * 501,
            "status": "done",
            "priority": "urgent",
            "dueDate": "not-a-date",
            "isCompleted": "maybe",
        }
        res = client.post("/api/todos", json=payload, headers=headers)
        assert res.status_code == 400
        body = res.json()
        assert body["message"] == "Validation failed"
        assert body["errors"] == [
            {"field": "title", "message": "Title must be between 1 and 100 characters"},
            {"field": "description", "message": "Description cannot be more than 500 characters"},
            {"field": "status", "message": "Status must be pending, in-progress, or completed"},
            {"field": "priority", "message": "Priority must be low, medium, or high"},
            {"field": "dueDate", "message": "Due date must be a valid date"},
            {"field": "isCompleted", "message": "isCompleted must be a boolean value"},
        ]

    def test_create_requires_title(self):
        headers, _ = auth_headers()
        res = client.post("/api/todos", json={"description": "no title"}, headers=headers)
        assert res.status_code == 400
        assert [e["field"] for e in res.json()["errors"]] == ["title"]

    def test_title_length_limit(self):
        headers, _ = auth_headers()
        assert client.post("/api/todos", json={"title": "x" * 100}, headers=headers).status_code == 201
        assert client.post("/api/todos", json={"title": "x" * 101}, headers=headers).status_code == 400

    def test_update_bad_due_date(self):
        headers, _ = auth_headers()
        todo = create_todo(headers, title="Due date bad")
        res = client.put(f"/api/todos/{todo['id']}", json={"dueDate": "2025-13-45"}, headers=headers)
        assert res.status_code == 400
        assert res.json()["errors"] == [{"field": "dueDate", "message": "Due date must be a valid date"}]


class TestServerErrors:
    def test_unexpected_failure_returns_generic_500(self):
        app = create_app(settings)
        failing_client = TestClient(app, raise_server_exceptions=False)

        def boom(*args, **kwargs):
            raise RuntimeError("database exploded: mongodb://secret@host")

        app.state.todo_service.list = boom

        email = f"boom-{uuid.uuid4().hex[:8]}@example.com"
        failing_client.post("/api/auth/register", json={"name": "Boom", "email": email, "password": "password123"})
        token = failing_client.post("/api/auth/login", json={"email": email, "password": "password123"}).json()["token"]

        res = failing_client.get("/api/todos", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 500
        assert res.json() == {"message": "Internal server error"}
        assert "secret" not in res.text


class TestScenario:
    def test_create_list_toggle_delete(self):
        headers, _ = auth_headers()
        res = client.post("/api/todos", json={"title": "Buy milk", "priority": "high"}, headers=headers)
        assert res.status_code == 201
        todo = res.json()["data"]
        assert todo["status"] == "pending"

        listed = client.get("/api/todos", headers=headers).json()["data"]
        assert [t["id"] for t in listed] == [todo["id"]]

        toggled = client.patch(f"/api/todos/{todo['id']}/toggle", headers=headers).json()["data"]
        assert toggled["isCompleted"] is True
        assert toggled["status"] == "completed"

        assert client.delete(f"/api/todos/{todo['id']}", headers=headers).status_code == 200
        assert client.get(f"/api/todos/{todo['id']}", headers=headers).status_code == 404
