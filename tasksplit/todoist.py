"""Todoist REST client bound to a single resolved token."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from tasksplit.config import DEFAULT_TODOIST_API_BASE, DEFAULT_TODOIST_TIMEOUT
from tasksplit.errors import UpstreamError, ValidationError
from tasksplit.models import (
    MAX_PRIORITY,
    MIN_PRIORITY,
    Task,
    TaskPayloadError,
    tasks_from_payload,
)

logger = logging.getLogger(__name__)

_ERROR_BODY_LIMIT = 200


class TodoistClient:
    """Task Fetcher transport and Mutation Gateway for one user's token.

    A client is built per request and closed when the request finishes; it
    holds no state besides the HTTP connection pool.
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_TODOIST_API_BASE,
        *,
        timeout: float = DEFAULT_TODOIST_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> TodoistClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(
        self, method: str, path: str, action: str, **kwargs: Any
    ) -> httpx.Response:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Todoist %s failed before a response: %s", action, exc)
            raise UpstreamError(
                f"Failed to {action}: {exc.__class__.__name__}",
                service="todoist",
            ) from exc

        logger.info("Todoist %s %s -> %s", method, path, response.status_code)
        if response.is_success:
            return response

        logger.warning(
            "Todoist %s returned %s: %s",
            action,
            response.status_code,
            response.text[:_ERROR_BODY_LIMIT],
        )
        raise UpstreamError(
            f"Failed to {action}: {response.status_code}",
            status=response.status_code,
            service="todoist",
        )

    def _decode(self, response: httpx.Response, action: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                f"Failed to {action}: response was not JSON",
                status=response.status_code,
                service="todoist",
            ) from exc

    def list_tasks(self) -> list[Task]:
        """Fetch every active task visible to the token, in upstream order."""
        action = "fetch tasks"
        response = self._request("GET", "/tasks", action)
        try:
            tasks = tasks_from_payload(self._decode(response, action))
        except TaskPayloadError as exc:
            raise UpstreamError(
                f"Failed to {action}: {exc}",
                status=response.status_code,
                service="todoist",
            ) from exc
        logger.info("Fetched %d tasks from Todoist", len(tasks))
        return tasks

    def close_task(self, task_id: str) -> None:
        """Mark a task as completed upstream."""
        if not isinstance(task_id, str) or not task_id.strip():
            raise ValidationError("taskId is required", {"fields": ["taskId"]})
        self._request("POST", f"/tasks/{task_id.strip()}/close", "complete task")

    def create_task(
        self,
        content: str,
        due_string: str | None = None,
        priority: int | None = None,
        parent_id: str | None = None,
    ) -> Task:
        """Create a task and return it with its assigned id."""
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("content is required", {"fields": ["content"]})
        body: dict[str, Any] = {"content": content}
        if due_string:
            body["due_string"] = due_string
        if priority is not None:
            if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
                raise ValidationError(
                    f"priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}.",
                    {"priority": priority},
                )
            body["priority"] = priority
        if parent_id:
            body["parent_id"] = parent_id

        action = "create task"
        response = self._request("POST", "/tasks", action, json=body)
        try:
            task = Task.from_payload(self._decode(response, action))
        except TaskPayloadError as exc:
            raise UpstreamError(
                f"Failed to {action}: {exc}",
                status=response.status_code,
                service="todoist",
            ) from exc
        logger.info("Created Todoist task %s (parent %s)", task.id, parent_id)
        return task
