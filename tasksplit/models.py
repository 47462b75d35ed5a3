"""Task value types normalised from Todoist payloads."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

MIN_PRIORITY = 1
MAX_PRIORITY = 4

logger = logging.getLogger(__name__)


class TaskPayloadError(ValueError):
    """Raised when an upstream task payload cannot be normalised."""


@dataclass(frozen=True)
class TaskDue:
    date: date
    string: str | None = None
    datetime: str | None = None
    timezone: str | None = None
    is_recurring: bool | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> TaskDue | None:
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise TaskPayloadError("due must be an object.")
        raw_date = payload.get("date")
        if not raw_date:
            return None
        if not isinstance(raw_date, str):
            raise TaskPayloadError("due.date must be a string.")
        try:
            # Datetime values carry a time part; only the calendar date counts.
            due_date = date.fromisoformat(raw_date[:10])
        except ValueError as exc:
            raise TaskPayloadError(f"Invalid due date: {raw_date!r}") from exc
        return cls(
            date=due_date,
            string=payload.get("string"),
            datetime=payload.get("datetime"),
            timezone=payload.get("timezone"),
            is_recurring=payload.get("is_recurring"),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"date": self.date.isoformat()}
        for name in ("string", "datetime", "timezone", "is_recurring"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


def _normalize_priority(task_id: str, priority: Any) -> int:
    if priority is None:
        return MIN_PRIORITY
    if (
        isinstance(priority, bool)
        or not isinstance(priority, int)
        or not MIN_PRIORITY <= priority <= MAX_PRIORITY
    ):
        logger.warning(
            "Task %s has invalid priority %r; treating it as %d",
            task_id,
            priority,
            MIN_PRIORITY,
        )
        return MIN_PRIORITY
    return priority


@dataclass(frozen=True)
class Task:
    id: str
    content: str
    priority: int = MIN_PRIORITY
    due: TaskDue | None = None
    is_completed: bool = False
    parent_id: str | None = None
    # Upstream object exactly as received; listings return it untouched.
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_payload(cls, payload: Any) -> Task:
        """Validate one Todoist task object and build a Task."""
        if not isinstance(payload, dict):
            raise TaskPayloadError("Task must be an object.")

        task_id = payload.get("id")
        if isinstance(task_id, bool) or not isinstance(task_id, (str, int)):
            raise TaskPayloadError("Task id must be a string.")
        task_id = str(task_id).strip()
        if not task_id:
            raise TaskPayloadError("Task id must not be empty.")

        content = payload.get("content")
        if not isinstance(content, str):
            raise TaskPayloadError(f"Task {task_id} has no content.")

        parent_id = payload.get("parent_id")
        if parent_id is not None:
            parent_id = str(parent_id).strip() or None

        return cls(
            id=task_id,
            content=content,
            priority=_normalize_priority(task_id, payload.get("priority")),
            due=TaskDue.from_payload(payload.get("due")),
            is_completed=bool(payload.get("is_completed", False)),
            parent_id=parent_id,
            raw=payload,
        )

    def to_dict(self) -> dict[str, Any]:
        if self.raw:
            return dict(self.raw)
        return {
            "id": self.id,
            "content": self.content,
            "priority": self.priority,
            "due": self.due.to_dict() if self.due else None,
            "is_completed": self.is_completed,
            "parent_id": self.parent_id,
        }


def tasks_from_payload(payload: Any) -> list[Task]:
    if not isinstance(payload, list):
        raise TaskPayloadError("Task list must be an array.")
    return [Task.from_payload(item) for item in payload]
