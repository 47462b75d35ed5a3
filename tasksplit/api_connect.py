"""Todoist connect flow: store a user's personal API token."""

from __future__ import annotations

from typing import Any

from fastapi import Request

from tasksplit.activity import record_activity
from tasksplit.errors import success_response
from tasksplit.payload import _ensure_payload_dict, _reject_unknown_fields, _require_string
from tasksplit.router import api_router
from tasksplit.services import get_credential_store
from tasksplit.user_scope import get_request_user_id


@api_router.post("/api/connect-todoist")
def connect_todoist(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Store or replace the caller's Todoist token. The token is never echoed."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"token"})

    token = _require_string(payload, "token", "Token is required")
    user_id = get_request_user_id(request)
    get_credential_store(request).store_token(user_id, token)
    record_activity(request, "connect_todoist", "store Todoist token")
    return success_response({"connected": True})
