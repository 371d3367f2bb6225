import os

import pytest
from fastapi.testclient import TestClient

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

# Import the FastAPI app
from todo_api.errors import StorageError  # noqa: E402
from todo_api.main import app  # noqa: E402
from todo_api.repositories import InMemoryRepository, get_repository  # noqa: E402


@pytest.fixture
def client():
    repo = InMemoryRepository()
    repo.initialize()
    app.dependency_overrides[get_repository] = lambda: repo
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_todo_payload(name="ToDo 1", description=None, tasks=("Task 1", "Task 2")):
    payload = {"name": name, "tasks": [{"name": t} for t in tasks]}
    if description is not None:
        payload["description"] = description
    return payload


def assert_todo_shape(todo: dict):
    assert isinstance(todo["id"], int)
    assert isinstance(todo["name"], str)
    for task in todo.get("tasks", []):
        assert isinstance(task["id"], int) and task["id"] > 0
        assert isinstance(task["name"], str)


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/")
        assert res.status_code == 200
        data = res.json()
        assert data["message"] == "Healthy"
        assert data["backend"] in ("memory", "sqlite")


class TestTodosCRUD:
    def test_create_todo(self, client):
        res = client.post("/todos/", json=create_todo_payload(description="Weekly"))
        assert res.status_code == 201
        todo = res.json()
        assert_todo_shape(todo)
        assert todo["name"] == "ToDo 1"
        assert todo["description"] == "Weekly"
        assert [t["name"] for t in todo["tasks"]] == ["Task 1", "Task 2"]

    def test_empty_fields_are_omitted(self, client):
        res = client.post("/todos/", json={"name": "Bare", "description": "", "tasks": []})
        assert res.status_code == 201
        todo = res.json()
        assert set(todo) == {"id", "name"}

        res = client.post("/todos/", json=create_todo_payload(tasks=["only"]))
        assert set(res.json()["tasks"][0]) == {"id", "name"}

    def test_list_todos(self, client):
        a = client.post("/todos/", json=create_todo_payload(name="A")).json()
        b = client.post("/todos/", json=create_todo_payload(name="B", tasks=[])).json()
        res = client.get("/todos/")
        assert res.status_code == 200
        by_id = {t["id"]: t for t in res.json()}
        assert by_id == {a["id"]: a, b["id"]: b}

    def test_get_todo_and_not_found(self, client):
        created = client.post("/todos/", json=create_todo_payload(name="Read book")).json()

        res_get = client.get(f"/todos/{created['id']}")
        assert res_get.status_code == 200
        assert res_get.json() == created

        res_404 = client.get("/todos/999999")
        assert res_404.status_code == 404
        assert res_404.json()["error"] == "NotFound"

    def test_put_reconciles_tasks(self, client):
        created = client.post("/todos/", json=create_todo_payload()).json()
        t1, t2 = [t["id"] for t in created["tasks"]]

        res_put = client.put(
            f"/todos/{created['id']}",
            json={
                "name": "My ToDo 1",
                "tasks": [
                    {"id": t1, "name": "Task 1"},
                    {"id": t2, "name": "My Task 2"},
                    {"name": "Task 3"},
                ],
            },
        )
        assert res_put.status_code == 200
        updated = res_put.json()
        assert updated["id"] == created["id"]
        assert updated["name"] == "My ToDo 1"
        assert [t["id"] for t in updated["tasks"]][:2] == [t1, t2]
        assert [t["name"] for t in updated["tasks"]] == ["Task 1", "My Task 2", "Task 3"]
        assert updated["tasks"][2]["id"] not in (t1, t2)

        assert client.get(f"/todos/{created['id']}").json() == updated

    def test_put_removes_omitted_tasks(self, client):
        created = client.post("/todos/", json=create_todo_payload(tasks=["a", "b", "c"])).json()
        keep = created["tasks"][1]

        res = client.put(f"/todos/{created['id']}", json={"name": created["name"], "tasks": [keep]})
        assert res.status_code == 200
        assert res.json()["tasks"] == [keep]

    def test_put_not_found(self, client):
        res = client.put("/todos/424242", json=create_todo_payload())
        assert res.status_code == 404
        assert res.json()["error"] == "NotFound"

    def test_delete_todo(self, client):
        tid = client.post("/todos/", json=create_todo_payload(name="ToDelete")).json()["id"]

        res_del = client.delete(f"/todos/{tid}")
        assert res_del.status_code == 204
        assert res_del.text == ""

        assert client.get(f"/todos/{tid}").status_code == 404
        res_del_again = client.delete(f"/todos/{tid}")
        assert res_del_again.status_code == 404
        assert res_del_again.json()["error"] == "NotFound"


class TestValidationErrors:
    def test_create_with_empty_name(self, client):
        res = client.post("/todos/", json=create_todo_payload(name=""))
        assert res.status_code == 422
        body = res.json()
        assert body["error"] == "ValidationError"
        assert body["kind"] == "EmptyName"
        assert client.get("/todos/").json() == []

    def test_update_with_empty_task_name(self, client):
        created = client.post("/todos/", json=create_todo_payload()).json()
        res = client.put(
            f"/todos/{created['id']}",
            json={"name": "Renamed", "tasks": [{"name": "fine"}, {"name": ""}]},
        )
        assert res.status_code == 422
        assert res.json()["kind"] == "EmptyName"
        assert client.get(f"/todos/{created['id']}").json() == created

    def test_malformed_body(self, client):
        res = client.post("/todos/", json={"name": "x", "tasks": [{"id": -1, "name": "neg"}]})
        assert res.status_code == 422
        body = res.json()
        assert body.get("error") == "ValidationError"
        assert body.get("message") == "Request validation failed"
        assert isinstance(body.get("detail"), list)

    def test_non_numeric_id(self, client):
        assert client.get("/todos/abc").status_code == 422


class TestStorageFailure:
    def test_storage_error_is_internal_error(self, client):
        class BrokenRepository(InMemoryRepository):
            def find_all(self):
                raise StorageError("connection refused")

        broken = BrokenRepository()
        broken.initialize()
        app.dependency_overrides[get_repository] = lambda: broken

        res = client.get("/todos/")
        assert res.status_code == 500
        body = res.json()
        assert body["error"] == "InternalError"
        assert "connection refused" not in body["message"]
