"""Payload validation helpers for JSON endpoints."""

from __future__ import annotations

from typing import Any

from tasksplit.errors import ValidationError


def _ensure_payload_dict(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationError(
            "Payload must be an object.",
            {"type": type(payload).__name__},
        )
    return payload


def _reject_unknown_fields(payload: dict[str, Any], allowed_fields: set[str]) -> None:
    unknown_fields = sorted(set(payload) - allowed_fields)
    if unknown_fields:
        raise ValidationError(
            "Unknown fields are not allowed.",
            {"fields": unknown_fields},
        )


def _require_string(payload: dict[str, Any], key: str, message: str) -> str:
    value = payload.get(key)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message, {"fields": [key]})
    return value.strip()


def _optional_string(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(
            f"{key} must be a string.",
            {key: str(value)},
        )
    return value.strip() or None
