"""Per-user activity log helpers and endpoint."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi import Request

from tasksplit.errors import ValidationError, success_response
from tasksplit.router import api_router
from tasksplit.user_scope import get_request_data_root, get_request_user_id

ACTIVITY_LOG_FILENAME = "activity.log"
DEFAULT_ACTIVITY_LIMIT = 50

logger = logging.getLogger(__name__)


def _activity_log_path(data_root: Path) -> Path:
    return data_root / ACTIVITY_LOG_FILENAME


def _append_activity_log(data_root: Path, entry: dict[str, Any]) -> None:
    log_path = _activity_log_path(data_root)
    payload = json.dumps(entry, sort_keys=True, separators=(",", ":"))
    with log_path.open("a", encoding="utf-8") as log_file:
        log_file.write(payload + "\n")
        log_file.flush()
        os.fsync(log_file.fileno())


def _build_activity_entry(
    operation: str,
    user_id: str,
    summary: str,
    task_id: str | None = None,
) -> dict[str, Any]:
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "operation": operation,
        "userId": user_id,
        "summary": summary,
    }
    if task_id is not None:
        entry["taskId"] = task_id
    return entry


def record_activity(
    request: Request, operation: str, summary: str, task_id: str | None = None
) -> None:
    """Append an entry to the requesting user's activity log.

    A failed write is logged and does not fail the request.
    """
    entry = _build_activity_entry(
        operation, get_request_user_id(request), summary, task_id
    )
    try:
        _append_activity_log(get_request_data_root(request), entry)
    except OSError:
        logger.exception("Failed to record %s activity", operation)


def _read_activity_entries(
    data_root: Path, since: datetime | None, limit: int
) -> list[dict[str, Any]]:
    log_path = _activity_log_path(data_root)
    if not log_path.exists():
        return []
    entries: list[dict[str, Any]] = []
    for line in log_path.read_text(encoding="utf-8").splitlines():
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if since:
            timestamp = entry.get("timestamp")
            try:
                entry_time = datetime.fromisoformat(timestamp)
            except (TypeError, ValueError):
                entry_time = None
            if entry_time and entry_time.tzinfo is None:
                entry_time = entry_time.replace(tzinfo=timezone.utc)
            if entry_time and entry_time < since:
                continue
        entries.append(entry)
    return entries[-limit:]


@api_router.get("/api/activity")
def read_activity_log(
    request: Request,
    limit: int = DEFAULT_ACTIVITY_LIMIT,
    since: str | None = None,
) -> dict[str, Any]:
    """Read the most recent entries from the user's activity log."""
    if limit <= 0:
        raise ValidationError(
            "limit must be a positive integer.",
            {"limit": limit},
        )

    since_time = None
    if since is not None:
        try:
            since_time = datetime.fromisoformat(since)
        except ValueError as exc:
            raise ValidationError(
                "since must be ISO date-time.",
                {"since": since},
            ) from exc
        if since_time.tzinfo is None:
            since_time = since_time.replace(tzinfo=timezone.utc)

    data_root = get_request_data_root(request)
    entries = _read_activity_entries(data_root, since_time, limit)
    return success_response({"entries": entries})
