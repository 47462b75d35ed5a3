import json
from dataclasses import replace

import httpx

from conftest import FakeTodoist, TEST_USER_ID, build_request, make_task, sign_in, user_root
from tasksplit import api_todoist
from tasksplit.credentials import FileCredentialStore


def test_list_requires_authentication(client, todoist):
    response = client.get("/api/todoist")

    assert response.status_code == 401
    assert response.json()["error"] == "Not authenticated"
    assert todoist.requests == []


def test_list_returns_upstream_tasks_unmodified(signed_in, todoist):
    expected = [dict(task) for task in todoist.tasks]

    response = signed_in.get("/api/todoist")

    assert response.status_code == 200
    payload = response.json()
    assert payload["ok"] is True
    assert payload["data"]["tasks"] == expected
    assert todoist.requests[0].headers["Authorization"] == "Bearer user-token"


def test_list_active_filter_drops_overdue(signed_in):
    response = signed_in.get("/api/todoist", params={"filter": "active"})

    assert response.status_code == 200
    assert [task["id"] for task in response.json()["data"]["tasks"]] == ["1", "2"]


def test_list_upstream_failure_is_500(signed_in, todoist):
    todoist.list_status = 502

    response = signed_in.get("/api/todoist")

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "UPSTREAM_ERROR"
    assert body["details"]["status"] == 502


def test_list_uses_fallback_token(app, client, todoist):
    app.state.config = replace(app.state.config, todoist_api_token="env123")
    sign_in(client)

    response = client.get("/api/todoist")

    assert response.status_code == 200
    assert todoist.requests[0].headers["Authorization"] == "Bearer env123"


def test_list_without_any_token_is_401(client):
    sign_in(client)

    response = client.get("/api/todoist")

    assert response.status_code == 401
    assert response.json()["code"] == "NO_CREDENTIAL"


def test_all_marks_completion(signed_in):
    response = signed_in.get("/api/todoist/all")

    assert response.status_code == 200
    tasks = response.json()["data"]["tasks"]
    assert len(tasks) == 3
    assert all(task["completed"] is False for task in tasks)


def test_tree_nests_children(signed_in):
    response = signed_in.get("/api/todoist/tree")

    assert response.status_code == 200
    roots = response.json()["data"]["tasks"]
    assert [root["id"] for root in roots] == ["1"]
    assert [child["id"] for child in roots[0]["children"]] == ["2", "3"]


def test_tree_with_active_filter(signed_in):
    response = signed_in.get("/api/todoist/tree", params={"filter": "active"})

    roots = response.json()["data"]["tasks"]
    assert [child["id"] for child in roots[0]["children"]] == ["2"]


def test_create_task_then_appears_in_tree(signed_in, todoist):
    created = signed_in.post(
        "/api/todoist/tasks",
        json={"content": "Renew passport", "parentId": "1", "priority": 3},
    )

    assert created.status_code == 200
    task = created.json()["data"]["task"]
    assert task["parent_id"] == "1"
    assert task["priority"] == 3

    roots = signed_in.get("/api/todoist/tree").json()["data"]["tasks"]
    assert task["id"] in [child["id"] for child in roots[0]["children"]]


def test_create_task_validation(signed_in, todoist):
    missing = signed_in.post("/api/todoist/tasks", json={"parentId": "1"})
    unknown = signed_in.post("/api/todoist/tasks", json={"content": "x", "color": "red"})
    bad_priority = signed_in.post("/api/todoist/tasks", json={"content": "x", "priority": "high"})

    assert missing.status_code == 400
    assert unknown.status_code == 400
    assert unknown.json()["details"] == {"fields": ["color"]}
    assert bad_priority.status_code == 400
    assert todoist.requests == []


def test_complete_task(signed_in, todoist, config):
    response = signed_in.post("/api/todoist/tasks/complete", json={"taskId": "2"})

    assert response.status_code == 200
    assert response.json()["data"] == {"taskId": "2", "completed": True}
    remaining = signed_in.get("/api/todoist").json()["data"]["tasks"]
    assert [task["id"] for task in remaining] == ["1", "3"]

    log_lines = (user_root(config) / "activity.log").read_text(encoding="utf-8").splitlines()
    entry = json.loads(log_lines[-1])
    assert entry["operation"] == "complete_task"
    assert entry["taskId"] == "2"


def test_complete_unknown_task_surfaces_upstream_status(signed_in):
    response = signed_in.post("/api/todoist/tasks/complete", json={"taskId": "404404"})

    assert response.status_code == 500
    body = response.json()
    assert body["ok"] is False
    assert body["details"]["status"] == 404
    assert "404" in body["error"]


def test_complete_requires_task_id(signed_in):
    response = signed_in.post("/api/todoist/tasks/complete", json={})

    assert response.status_code == 400
    assert response.json()["error"] == "taskId is required"


def test_list_tasks_direct_call(config, todoist):
    FileCredentialStore(config.data_path).store_token(TEST_USER_ID, "abc")
    request = build_request(config, todoist_transport=todoist.transport)

    result = api_todoist.list_tasks(request, task_filter="active")

    assert result["ok"] is True
    assert [task["id"] for task in result["data"]["tasks"]] == ["1", "2"]


def test_create_task_direct_call_records_activity(config):
    fake = FakeTodoist([make_task("1", "Parent")])
    FileCredentialStore(config.data_path).store_token(TEST_USER_ID, "abc")
    request = build_request(config, todoist_transport=fake.transport)

    result = api_todoist.create_task({"content": "Child", "parentId": "1"}, request)

    assert result["data"]["task"]["parent_id"] == "1"
    entry = json.loads((user_root(config) / "activity.log").read_text(encoding="utf-8"))
    assert entry["operation"] == "create_task"
    assert entry["userId"] == TEST_USER_ID


def test_list_returns_sparse_upstream_payload_unchanged(signed_in, todoist):
    todoist.tasks = [
        {"id": "1", "content": "a", "priority": 1, "project_id": "p"},
        {
            "id": "2",
            "content": "b",
            "priority": 0,
            "due": {"date": "2030-01-01", "datetime": None, "timezone": None},
        },
    ]
    expected = [dict(task) for task in todoist.tasks]

    response = signed_in.get("/api/todoist")

    assert response.status_code == 200
    assert response.json()["data"]["tasks"] == expected


def test_all_lists_open_tasks_before_completed(config):
    upstream = [
        make_task("1", "Done already", is_completed=True),
        make_task("2", "Still open"),
    ]

    def handler(request):
        return httpx.Response(200, json=upstream)

    FileCredentialStore(config.data_path).store_token(TEST_USER_ID, "abc")
    request = build_request(config, todoist_transport=httpx.MockTransport(handler))

    result = api_todoist.list_all_tasks(request)

    data = result["data"]
    assert [(task["id"], task["completed"]) for task in data["tasks"]] == [
        ("2", False),
        ("1", True),
    ]
    assert data["activeCount"] == 1
    assert data["completedCount"] == 1
