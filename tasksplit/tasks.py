"""Task filtering and hierarchy reconstruction for display."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Sequence

from tasksplit.models import Task
from tasksplit.todoist import TodoistClient

ACTIVE_FILTER = "active"

logger = logging.getLogger(__name__)


@dataclass
class TaskNode:
    task: Task
    children: list[TaskNode] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = self.task.to_dict()
        data["children"] = [child.to_dict() for child in self.children]
        return data


def is_active(task: Task, today: date) -> bool:
    """A task is active unless its due date lies strictly before today."""
    if task.due is None:
        return True
    return task.due.date >= today


def filter_tasks(
    tasks: Iterable[Task], task_filter: str | None, today: date | None = None
) -> list[Task]:
    if task_filter != ACTIVE_FILTER:
        return list(tasks)
    today = today or date.today()
    return [task for task in tasks if is_active(task, today)]


def fetch_tasks(
    client: TodoistClient, task_filter: str | None = None, today: date | None = None
) -> list[Task]:
    """Fetch a user's tasks and apply the optional "active" filter."""
    tasks = client.list_tasks()
    filtered = filter_tasks(tasks, task_filter, today)
    if task_filter == ACTIVE_FILTER:
        logger.info(
            "Filtered for active, returning %d of %d tasks", len(filtered), len(tasks)
        )
    return filtered


def children_of(tasks: Sequence[Task], parent_id: str | None) -> list[Task]:
    """Return the tasks directly under ``parent_id`` in their original order.

    With ``parent_id=None`` this returns the roots: tasks without a parent
    and tasks whose parent is not part of ``tasks``.
    """
    if parent_id is not None:
        return [task for task in tasks if task.parent_id == parent_id]
    known_ids = {task.id for task in tasks}
    return [
        task
        for task in tasks
        if task.parent_id is None or task.parent_id not in known_ids
    ]


def build_task_tree(
    tasks: Sequence[Task], parent_id: str | None = None
) -> list[TaskNode]:
    # Todoist forbids cycles; tasks on one are never reached from a root.
    return [
        TaskNode(task=task, children=build_task_tree(tasks, task.id))
        for task in children_of(tasks, parent_id)
    ]


def split_by_completion(tasks: Iterable[Task]) -> tuple[list[Task], list[Task]]:
    active: list[Task] = []
    completed: list[Task] = []
    for task in tasks:
        (completed if task.is_completed else active).append(task)
    return active, completed
