from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient

from tasksplit.config import AppConfig
from tasksplit.credentials import FileCredentialStore
from tasksplit.main import create_app

TEST_USER_ID = "1098765432101234"
TODOIST_PREFIX = "/rest/v2"


def make_task(task_id, content, parent_id=None, due=None, priority=1, **extra):
    task = {
        "id": task_id,
        "content": content,
        "description": "",
        "project_id": "2203306141",
        "priority": priority,
        "due": {"date": due, "string": due, "is_recurring": False} if due else None,
        "is_completed": False,
        "parent_id": parent_id,
        "labels": [],
    }
    task.update(extra)
    return task


class FakeTodoist:
    """In-memory Todoist REST API served through httpx.MockTransport."""

    def __init__(self, tasks=None):
        self.tasks = [dict(task) for task in tasks or []]
        self.requests: list[httpx.Request] = []
        self.fail_create_at: int | None = None
        self.list_status = 200
        self._creates = 0
        self._next_id = 9000

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        assert path.startswith(TODOIST_PREFIX)
        path = path[len(TODOIST_PREFIX) :]

        if request.method == "GET" and path == "/tasks":
            if self.list_status != 200:
                return httpx.Response(self.list_status, text="upstream unavailable")
            open_tasks = [task for task in self.tasks if not task.get("is_completed")]
            return httpx.Response(200, json=open_tasks)

        if request.method == "POST" and path == "/tasks":
            index = self._creates
            self._creates += 1
            if self.fail_create_at is not None and index >= self.fail_create_at:
                return httpx.Response(503, text="try again later")
            body = json.loads(request.content)
            self._next_id += 1
            task = make_task(
                str(self._next_id),
                body["content"],
                parent_id=body.get("parent_id"),
                priority=body.get("priority", 1),
            )
            if body.get("due_string"):
                task["due"] = {
                    "date": "2030-01-01",
                    "string": body["due_string"],
                    "is_recurring": False,
                }
            self.tasks.append(task)
            return httpx.Response(200, json=task)

        if request.method == "POST" and path.endswith("/close"):
            task_id = path.split("/")[2]
            for task in self.tasks:
                if task["id"] == task_id:
                    task["is_completed"] = True
                    return httpx.Response(204)
            return httpx.Response(404, text="Task not found")

        return httpx.Response(404, text="Not found")


class FakeModel:
    def __init__(self, text="1. Buy milk\n2. Call dentist\n\n3) Pay bills"):
        self.text = text
        self.prompts: list[str] = []
        self.histories: list[list[dict]] = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        return self.text

    def chat(self, messages):
        self.histories.append(messages)
        return self.text


def google_transport(subject=TEST_USER_ID):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            form = parse_qs(request.content.decode("utf-8"))
            if form.get("code") != ["good-code"]:
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "google-access"})
        if request.url.host == "openidconnect.googleapis.com":
            assert request.headers["Authorization"] == "Bearer google-access"
            return httpx.Response(
                200,
                json={"sub": subject, "email": "user@example.com", "name": "Test User"},
            )
        return httpx.Response(404)

    return httpx.MockTransport(handler)


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        data_path=tmp_path / "data",
        session_secret="test-session-secret",
        todoist_api_token=None,
        google_client_id="client-id",
        google_client_secret="client-secret",
        gemini_api_key=None,
    )


@pytest.fixture
def todoist() -> FakeTodoist:
    return FakeTodoist(
        [
            make_task("1", "Plan trip"),
            make_task("2", "Book flights", parent_id="1"),
            make_task("3", "Pack bags", parent_id="1", due="2000-01-01"),
        ]
    )


@pytest.fixture
def model() -> FakeModel:
    return FakeModel()


@pytest.fixture
def app(config, todoist, model):
    app = create_app(config)
    app.state.todoist_transport = todoist.transport
    app.state.oauth_transport = google_transport()
    app.state.language_model = model
    return app


def sign_in(client: TestClient) -> None:
    response = client.get("/api/auth/signin", follow_redirects=False)
    assert response.status_code == 302
    query = parse_qs(urlparse(response.headers["location"]).query)
    callback = client.get(
        "/api/auth/callback/google",
        params={"code": "good-code", "state": query["state"][0]},
        follow_redirects=False,
    )
    assert callback.status_code == 302


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def signed_in(client, config):
    sign_in(client)
    FileCredentialStore(config.data_path).store_token(TEST_USER_ID, "user-token")
    return client


def build_request(config, user_id=TEST_USER_ID, **state):
    """Minimal stand-in for a starlette Request in direct handler calls."""
    app_state = SimpleNamespace(
        config=config,
        credential_store=FileCredentialStore(config.data_path),
        todoist_transport=None,
        oauth_transport=None,
        language_model=None,
    )
    for key, value in state.items():
        setattr(app_state, key, value)
    return SimpleNamespace(
        app=SimpleNamespace(state=app_state),
        state=SimpleNamespace(user_id=user_id),
        session={"user": {"id": user_id}} if user_id else {},
    )


def user_root(config: AppConfig) -> Path:
    return config.data_path / "users" / TEST_USER_ID
