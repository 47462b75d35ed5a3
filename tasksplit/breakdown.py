"""AI task decomposition: prompt, parse and materialise subtasks."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from tasksplit.errors import AppError, ValidationError
from tasksplit.models import Task
from tasksplit.todoist import TodoistClient

logger = logging.getLogger(__name__)

BREAKDOWN_PROMPT = (
    "Break down the following task into smaller, actionable subtasks. "
    "Each subtask should be a short, clear instruction. "
    "Provide only the list of subtasks, one per line, with no numbering or "
    'bullet points. Task: "{content}"'
)
DETAILS_SUFFIX = "\n\nAdditional context and requirements: {details}"

# Leading run of list markers: digits, dots, closing parens, dashes,
# asterisks, bullets and whitespace.
LIST_MARKER_PATTERN = re.compile(r"^[\s\d.)*\-•]+")


class LanguageModel(Protocol):
    def generate(self, prompt: str) -> str: ...


@dataclass
class BreakdownResult:
    subtasks: list[str]
    created: list[Task] = field(default_factory=list)
    failure: dict[str, Any] | None = None

    @property
    def complete(self) -> bool:
        return self.failure is None


def build_breakdown_prompt(content: str, additional_details: str | None = None) -> str:
    prompt = BREAKDOWN_PROMPT.format(content=content)
    if additional_details and additional_details.strip():
        prompt += DETAILS_SUFFIX.format(details=additional_details.strip())
    return prompt


def parse_subtasks(text: str) -> list[str]:
    """Turn free model text into subtask lines.

    Every physical line is one subtask, so a description the model wraps
    over several lines comes back as several subtasks.
    """
    subtasks = []
    for line in text.splitlines():
        if not line.strip():
            continue
        cleaned = LIST_MARKER_PATTERN.sub("", line).strip()
        if cleaned:
            subtasks.append(cleaned)
    return subtasks


def breakdown_task(
    model: LanguageModel, content: str, additional_details: str | None = None
) -> list[str]:
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("taskContent is required", {"fields": ["taskContent"]})
    text = model.generate(build_breakdown_prompt(content, additional_details))
    subtasks = parse_subtasks(text)
    logger.info("Model proposed %d subtasks", len(subtasks))
    return subtasks


def materialize_subtasks(
    client: TodoistClient, parent_id: str, subtasks: Sequence[str]
) -> BreakdownResult:
    """Create subtasks one by one under ``parent_id``.

    Creation stops at the first failure; subtasks created before it are kept.
    """
    result = BreakdownResult(subtasks=list(subtasks))
    for index, content in enumerate(subtasks):
        try:
            result.created.append(client.create_task(content, parent_id=parent_id))
        except AppError as exc:
            logger.warning(
                "Subtask %d of %d for %s failed: %s",
                index + 1,
                len(subtasks),
                parent_id,
                exc,
            )
            result.failure = {
                "index": index,
                "content": content,
                "error": exc.error.to_dict(),
            }
            break
    return result


def decompose_task(
    model: LanguageModel,
    client: TodoistClient,
    parent_id: str,
    content: str,
    additional_details: str | None = None,
) -> BreakdownResult:
    if not isinstance(parent_id, str) or not parent_id.strip():
        raise ValidationError("parentId is required", {"fields": ["parentId"]})
    subtasks = breakdown_task(model, content, additional_details)
    return materialize_subtasks(client, parent_id.strip(), subtasks)
