"""Request-scoped user identity and per-user data root helpers."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from fastapi import Request

from tasksplit.errors import NotAuthenticated, ValidationError

SESSION_USER_KEY = "user"
AUTH_EXEMPT_PATHS = {"/health"}
AUTH_EXEMPT_PREFIXES = ("/api/auth/",)

_VALID_USER_ID = re.compile(r"^[A-Za-z0-9_]{3,128}$")


def is_auth_exempt(path: str) -> bool:
    return path in AUTH_EXEMPT_PATHS or path.startswith(AUTH_EXEMPT_PREFIXES)


def normalize_user_id(raw_user_id: Any) -> str:
    """Normalize and validate a user id from the session."""
    if raw_user_id is None:
        raise NotAuthenticated()
    if not isinstance(raw_user_id, str):
        raise ValidationError(
            "User id must be a string.",
            {"type": type(raw_user_id).__name__},
        )

    normalized = raw_user_id.strip().replace("-", "")
    if not normalized:
        raise NotAuthenticated()

    if not _VALID_USER_ID.fullmatch(normalized):
        raise ValidationError(
            "User id contains invalid characters.",
            {"user_id": raw_user_id},
        )
    return normalized


def session_user(session: Any) -> dict[str, Any] | None:
    user = session.get(SESSION_USER_KEY) if session is not None else None
    if isinstance(user, dict) and user.get("id"):
        return user
    return None


def resolve_user_data_root(base_root: Path, user_id: str) -> Path:
    """Resolve the scoped user data root path."""
    return base_root / "users" / normalize_user_id(user_id)


def get_request_user_id(request: Request) -> str:
    """Read and cache the normalized user id from request state or session."""
    cached = getattr(request.state, "user_id", None)
    if isinstance(cached, str) and cached.strip():
        return normalize_user_id(cached)

    user = session_user(getattr(request, "session", None))
    if user is None:
        raise NotAuthenticated()

    normalized = normalize_user_id(user["id"])
    request.state.user_id = normalized
    return normalized


def get_request_data_root(request: Request) -> Path:
    """Resolve and create the user-scoped data root for a request."""
    config = request.app.state.config
    user_id = get_request_user_id(request)
    scoped_root = resolve_user_data_root(Path(config.data_path), user_id)
    scoped_root.mkdir(parents=True, exist_ok=True)
    return scoped_root
