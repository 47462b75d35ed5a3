"""Language model endpoints: task breakdown and the generic assistant."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request

from tasksplit.activity import record_activity
from tasksplit.breakdown import decompose_task
from tasksplit.errors import UpstreamError, ValidationError, success_response
from tasksplit.payload import (
    _ensure_payload_dict,
    _optional_string,
    _reject_unknown_fields,
    _require_string,
)
from tasksplit.router import api_router
from tasksplit.services import get_language_model, open_todoist_client

logger = logging.getLogger(__name__)


@api_router.post("/api/ai/breakdown-task")
def breakdown_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Split a task into subtasks with the model and create them as children."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"taskContent", "parentId", "additionalDetails"})

    if not payload.get("taskContent") or not payload.get("parentId"):
        raise ValidationError(
            "Missing taskContent or parentId",
            {"fields": ["taskContent", "parentId"]},
        )
    content = _require_string(payload, "taskContent", "taskContent is required")
    parent_id = _require_string(payload, "parentId", "parentId is required")
    details = _optional_string(payload, "additionalDetails")

    model = get_language_model(request)
    with open_todoist_client(request) as client:
        result = decompose_task(model, client, parent_id, content, details)

    created = [task.to_dict() for task in result.created]
    if created:
        record_activity(
            request,
            "create_subtasks",
            f"create {len(created)} subtasks",
            parent_id,
        )
    if not result.complete:
        failure = result.failure or {}
        error_details = failure.get("error", {}).get("details", {})
        raise UpstreamError(
            f"Failed to create subtask {failure.get('index', 0) + 1} "
            f"of {len(result.subtasks)}",
            {"created": created, "failed": failure},
            status=error_details.get("status"),
            service=error_details.get("service", "todoist"),
        )
    return success_response({"subtasks": created})


@api_router.post("/api/agent")
def agent(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Answer a single prompt or continue a chat history."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"prompt", "messages"})

    model = get_language_model(request)
    messages = payload.get("messages")
    if isinstance(messages, list) and messages:
        response = model.chat(messages)
    elif payload.get("prompt"):
        response = model.generate(
            _require_string(payload, "prompt", "prompt must be a string.")
        )
    else:
        raise ValidationError(
            "Missing required parameters: 'prompt' or 'messages'",
            {"fields": ["prompt", "messages"]},
        )
    return success_response({"response": response})
