"""Request-scoped access to the credential store, Todoist and the model."""

from __future__ import annotations

from typing import Any

from fastapi import Request

from tasksplit.credentials import CredentialStore, ResolvedCredential, resolve_credential
from tasksplit.todoist import TodoistClient
from tasksplit.user_scope import get_request_user_id


def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.credential_store


def resolve_request_credential(request: Request) -> ResolvedCredential:
    config = request.app.state.config
    return resolve_credential(
        get_request_user_id(request),
        get_credential_store(request),
        config.todoist_api_token,
    )


def open_todoist_client(request: Request) -> TodoistClient:
    """Build a transient Todoist client bound to the caller's token."""
    config = request.app.state.config
    credential = resolve_request_credential(request)
    return TodoistClient(
        credential.token,
        config.todoist_api_base,
        timeout=config.todoist_timeout,
        transport=getattr(request.app.state, "todoist_transport", None),
    )


def get_language_model(request: Request) -> Any:
    return request.app.state.language_model
