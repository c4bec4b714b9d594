from datetime import datetime

from fastapi.testclient import TestClient

from tasks_api.main import create_app
from tasks_api.repositories import InMemoryRepository

TASKS = "/api/tasks"
UNKNOWN_ID = "0123456789abcdef01234567"


def parse_ts(value: str) -> datetime:
    # pydantic renders UTC as a trailing 'Z'
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def create_task(client, **fields):
    payload = {"title": "Test Task"}
    payload.update(fields)
    res = client.post(TASKS, json=payload)
    assert res.status_code == 201, res.text
    return res.json()


def assert_task_shape(task: dict):
    for key in [
        "id",
        "title",
        "description",
        "category",
        "priority",
        "isCompleted",
        "dueDate",
        "createdAt",
        "updatedAt",
    ]:
        assert key in task
    assert isinstance(task["id"], str)
    assert isinstance(task["title"], str)
    assert isinstance(task["isCompleted"], bool)
    assert task["priority"] in ("High", "Medium", "Low")
    parse_ts(task["createdAt"])
    parse_ts(task["updatedAt"])


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/")
        assert res.status_code == 200
        assert res.json() == {"message": "Healthy", "backend": "memory"}


class TestCreate:
    def test_create_with_title_only_applies_defaults(self, client):
        res = client.post(TASKS, json={"title": "Buy milk"})
        assert res.status_code == 201
        task = res.json()
        assert_task_shape(task)
        assert task["title"] == "Buy milk"
        assert task["priority"] == "Low"
        assert task["isCompleted"] is False
        assert task["description"] is None
        assert task["category"] is None
        assert task["dueDate"] is None
        assert task["createdAt"] == task["updatedAt"]

    def test_create_with_all_fields(self, client):
        task = create_task(
            client,
            title="Pay bills",
            description="Electricity",
            category="Home",
            priority="High",
            isCompleted=True,
            dueDate="2099-12-25",
        )
        assert task["description"] == "Electricity"
        assert task["category"] == "Home"
        assert task["priority"] == "High"
        assert task["isCompleted"] is True
        # Due date should be promoted to midnight
        assert task["dueDate"].startswith("2099-12-25T00:00:00")

    def test_create_accepts_snake_case_names(self, client):
        task = create_task(client, title="Snake", is_completed=True, due_date="2099-01-02T10:30:00")
        assert task["isCompleted"] is True
        assert task["dueDate"].startswith("2099-01-02T10:30:00")

    def test_create_trims_title(self, client):
        task = create_task(client, title="  Walk dog  ")
        assert task["title"] == "Walk dog"

    def test_title_length_is_checked_after_trimming(self, client):
        task = create_task(client, title="a" * 200 + "  ")
        assert task["title"] == "a" * 200

    def test_create_ignores_echoed_store_fields(self, client):
        task = create_task(client, title="Copy", id=UNKNOWN_ID, createdAt="2000-01-01T00:00:00Z")
        assert task["id"] != UNKNOWN_ID
        assert task["createdAt"] == task["updatedAt"]

    def test_created_ids_are_unique(self, client):
        ids = {create_task(client, title=f"Task {i}")["id"] for i in range(5)}
        assert len(ids) == 5


class TestList:
    def test_list_empty(self, client):
        res = client.get(TASKS)
        assert res.status_code == 200
        assert res.json() == []

    def test_list_returns_created_tasks_in_insertion_order(self, client):
        created = [create_task(client, title=f"Task {i}") for i in range(3)]
        res = client.get(TASKS)
        assert res.status_code == 200
        assert res.json() == created


class TestUpdate:
    def test_update_replaces_sent_fields_only(self, client):
        task = create_task(client, title="Partial", description="X", category="Work")
        res = client.put(f"{TASKS}/{task['id']}", json={"title": "Partial Updated", "isCompleted": True})
        assert res.status_code == 200
        updated = res.json()
        assert updated["id"] == task["id"]
        assert updated["title"] == "Partial Updated"
        assert updated["isCompleted"] is True
        assert updated["description"] == "X"
        assert updated["category"] == "Work"

    def test_update_refreshes_updated_at_and_keeps_created_at(self, client):
        task = create_task(client)
        updated = client.put(f"{TASKS}/{task['id']}", json={"priority": "Medium"}).json()
        assert updated["createdAt"] == task["createdAt"]
        assert parse_ts(updated["updatedAt"]) > parse_ts(task["updatedAt"])

    def test_update_null_clears_optional_field(self, client):
        task = create_task(client, description="temporary", dueDate="2099-05-05")
        updated = client.put(f"{TASKS}/{task['id']}", json={"description": None, "dueDate": None}).json()
        assert updated["description"] is None
        assert updated["dueDate"] is None

    def test_update_with_full_task_body_ignores_store_fields(self, client):
        task = create_task(client, title="Echo")
        body = dict(task, isCompleted=True, id=UNKNOWN_ID, createdAt="2000-01-01T00:00:00Z")
        res = client.put(f"{TASKS}/{task['id']}", json=body)
        assert res.status_code == 200
        updated = res.json()
        assert updated["id"] == task["id"]
        assert updated["createdAt"] == task["createdAt"]
        assert updated["isCompleted"] is True
        assert parse_ts(updated["updatedAt"]) > parse_ts(task["updatedAt"])

    def test_update_echoing_received_task(self, client):
        task = create_task(client, title="Echo")
        res = client.put(f"{TASKS}/{task['id']}", json=dict(task, isCompleted=True))
        assert res.status_code == 200
        assert res.json()["isCompleted"] is True

    def test_update_unknown_id_returns_null(self, client):
        res = client.put(f"{TASKS}/{UNKNOWN_ID}", json={"isCompleted": True})
        assert res.status_code == 200
        assert res.json() is None


class TestDelete:
    def test_delete_removes_task(self, client):
        keep = create_task(client, title="Keep")
        gone = create_task(client, title="Gone")
        res = client.delete(f"{TASKS}/{gone['id']}")
        assert res.status_code == 200
        assert res.json() == {"message": "Task deleted"}
        assert client.get(TASKS).json() == [keep]

    def test_delete_unknown_id_still_succeeds(self, client):
        res = client.delete(f"{TASKS}/{UNKNOWN_ID}")
        assert res.status_code == 200
        assert res.json() == {"message": "Task deleted"}


class TestEndToEnd:
    def test_create_list_update_delete(self, client):
        res = client.post(TASKS, json={"title": "Buy milk"})
        assert res.status_code == 201
        task = res.json()
        assert task["title"] == "Buy milk"
        assert task["priority"] == "Low"
        assert task["isCompleted"] is False

        assert task in client.get(TASKS).json()

        res_put = client.put(f"{TASKS}/{task['id']}", json={"isCompleted": True})
        assert res_put.status_code == 200
        assert res_put.json()["isCompleted"] is True

        res_del = client.delete(f"{TASKS}/{task['id']}")
        assert res_del.status_code == 200
        assert res_del.json() == {"message": "Task deleted"}

        assert all(t["id"] != task["id"] for t in client.get(TASKS).json())


class TestValidationErrors:
    def assert_validation_body(self, res):
        assert res.status_code == 422
        body = res.json()
        assert body.get("error") == "ValidationError"
        assert body.get("message") == "Request validation failed"
        assert isinstance(body.get("detail"), list)

    def test_create_missing_title(self, client):
        self.assert_validation_body(client.post(TASKS, json={"description": "no title"}))

    def test_create_blank_title(self, client):
        self.assert_validation_body(client.post(TASKS, json={"title": "   "}))

    def test_create_invalid_priority(self, client):
        self.assert_validation_body(client.post(TASKS, json={"title": "A", "priority": "Urgent"}))

    def test_create_unknown_field(self, client):
        self.assert_validation_body(client.post(TASKS, json={"title": "A", "owner": "bob"}))

    def test_create_bad_due_date(self, client):
        self.assert_validation_body(client.post(TASKS, json={"title": "A", "dueDate": "not-a-date"}))

    def test_update_null_title(self, client):
        task = create_task(client)
        self.assert_validation_body(client.put(f"{TASKS}/{task['id']}", json={"title": None}))

    def test_update_invalid_priority(self, client):
        task = create_task(client)
        self.assert_validation_body(client.put(f"{TASKS}/{task['id']}", json={"priority": "low"}))

    def test_create_title_too_long(self, client):
        self.assert_validation_body(client.post(TASKS, json={"title": "a" * 201}))

    def test_non_json_body(self, client):
        res = client.post(TASKS, content=b'{"title": "x"}', headers={"Content-Type": "text/plain"})
        self.assert_validation_body(res)


class TestPersistenceErrors:
    def test_malformed_id_is_a_server_error(self, settings):
        client = TestClient(
            create_app(settings=settings, repository=InMemoryRepository()),
            raise_server_exceptions=False,
        )
        res = client.put(f"{TASKS}/not-an-id", json={"isCompleted": True})
        assert res.status_code == 500
        res = client.delete(f"{TASKS}/not-an-id")
        assert res.status_code == 500


class TestCors:
    def test_any_origin_is_allowed(self, client):
        res = client.get(TASKS, headers={"Origin": "http://example.com"})
        assert res.status_code == 200
        assert res.headers["access-control-allow-origin"] == "*"

    def test_preflight(self, client):
        res = client.options(
            TASKS,
            headers={
                "Origin": "http://example.com",
                "Access-Control-Request-Method": "PUT",
            },
        )
        assert res.status_code == 200
        assert res.headers["access-control-allow-origin"] == "*"
