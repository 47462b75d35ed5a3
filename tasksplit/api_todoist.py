"""Todoist task endpoints: listing, hierarchy, creation and completion."""

from __future__ import annotations

from typing import Any

from fastapi import Query, Request

from tasksplit.activity import record_activity
from tasksplit.errors import ValidationError, success_response
from tasksplit.payload import (
    _ensure_payload_dict,
    _optional_string,
    _reject_unknown_fields,
    _require_string,
)
from tasksplit.router import api_router
from tasksplit.services import open_todoist_client
from tasksplit.tasks import build_task_tree, fetch_tasks, split_by_completion


@api_router.get("/api/todoist")
def list_tasks(
    request: Request, task_filter: str | None = Query(default=None, alias="filter")
) -> dict[str, Any]:
    """List the user's tasks, optionally only the active ones."""
    with open_todoist_client(request) as client:
        tasks = fetch_tasks(client, task_filter)
    return success_response({"tasks": [task.to_dict() for task in tasks]})


@api_router.get("/api/todoist/all")
def list_all_tasks(request: Request) -> dict[str, Any]:
    """List every task with a ``completed`` flag, open tasks first."""
    with open_todoist_client(request) as client:
        tasks = fetch_tasks(client)
    active, completed = split_by_completion(tasks)
    payload = []
    for task in active + completed:
        item = task.to_dict()
        item["completed"] = task.is_completed
        payload.append(item)
    return success_response(
        {
            "tasks": payload,
            "activeCount": len(active),
            "completedCount": len(completed),
        }
    )


@api_router.get("/api/todoist/tree")
def task_tree(
    request: Request, task_filter: str | None = Query(default=None, alias="filter")
) -> dict[str, Any]:
    """Return tasks nested under their parents."""
    with open_todoist_client(request) as client:
        tasks = fetch_tasks(client, task_filter)
    return success_response(
        {"tasks": [node.to_dict() for node in build_task_tree(tasks)]}
    )


@api_router.post("/api/todoist/tasks")
def create_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Create a task, optionally as a child of ``parentId``."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"content", "dueString", "priority", "parentId"})

    content = _require_string(payload, "content", "content is required")
    priority = payload.get("priority")
    if priority is not None and (
        isinstance(priority, bool) or not isinstance(priority, int)
    ):
        raise ValidationError("priority must be an integer.", {"priority": str(priority)})

    with open_todoist_client(request) as client:
        task = client.create_task(
            content,
            due_string=_optional_string(payload, "dueString"),
            priority=priority,
            parent_id=_optional_string(payload, "parentId"),
        )
    record_activity(request, "create_task", "create task", task.id)
    return success_response({"task": task.to_dict()})


@api_router.post("/api/todoist/tasks/complete")
def complete_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Close a task upstream."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"taskId"})

    task_id = _require_string(payload, "taskId", "taskId is required")
    with open_todoist_client(request) as client:
        client.close_task(task_id)
    record_activity(request, "complete_task", "complete task", task_id)
    return success_response({"taskId": task_id, "completed": True})
