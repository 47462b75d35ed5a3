"""Todoist credential storage and per-request resolution."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from tasksplit.errors import NoCredentialAvailable, NotAuthenticated, ValidationError
from tasksplit.user_scope import resolve_user_data_root
from tasksplit.utils import _atomic_write

CREDENTIALS_FILENAME = "credentials.json"

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    def get_token(self, user_id: str) -> str | None: ...

    def store_token(self, user_id: str, token: str) -> None: ...


@dataclass(frozen=True)
class ResolvedCredential:
    token: str
    user_id: str
    source: str

    def __repr__(self) -> str:
        return (
            f"ResolvedCredential(user_id={self.user_id!r}, source={self.source!r})"
        )


class FileCredentialStore:
    """Keeps one credentials.json per user under the data root."""

    def __init__(self, base_root: Path) -> None:
        self._base_root = Path(base_root)

    def _path(self, user_id: str) -> Path:
        return resolve_user_data_root(self._base_root, user_id) / CREDENTIALS_FILENAME

    def get_token(self, user_id: str) -> str | None:
        path = self._path(user_id)
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("Unreadable credential file for user %s", user_id)
            return None
        token = data.get("todoist_token") if isinstance(data, dict) else None
        if isinstance(token, str) and token.strip():
            return token.strip()
        return None

    def store_token(self, user_id: str, token: str) -> None:
        if not isinstance(token, str) or not token.strip():
            raise ValidationError("Token is required", {"fields": ["token"]})
        path = self._path(user_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps({"todoist_token": token.strip()}, sort_keys=True)
        _atomic_write(path, payload + "\n")
        logger.info("Stored Todoist token for user %s", user_id)


def resolve_credential(
    user_id: str | None,
    store: CredentialStore,
    fallback_token: str | None,
) -> ResolvedCredential:
    """Return the Todoist token for a user, preferring a stored token."""
    if not user_id:
        raise NotAuthenticated()

    stored = store.get_token(user_id)
    if stored:
        return ResolvedCredential(token=stored, user_id=user_id, source="stored")

    if fallback_token:
        logger.info("Using fallback Todoist token for user %s", user_id)
        return ResolvedCredential(
            token=fallback_token, user_id=user_id, source="fallback"
        )

    logger.warning("No Todoist token available for user %s", user_id)
    raise NoCredentialAvailable(details={"userId": user_id})
