"""Structured error types and response envelopes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class ErrorResponse:
    """Serializable error payload returned by route handlers."""

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code, "details": self.details}


class AppError(RuntimeError):
    """Exception carrying a structured error response and an HTTP status."""

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Internal server error."

    def __init__(
        self,
        message: str | None = None,
        details: Mapping[str, Any] | None = None,
        *,
        code: str | None = None,
    ) -> None:
        message = message or self.default_message
        super().__init__(message)
        self.error = ErrorResponse(
            code=code or self.code, message=message, details=dict(details or {})
        )


class NotAuthenticated(AppError):
    status_code = 401
    code = "NOT_AUTHENTICATED"
    default_message = "Not authenticated"


class NoCredentialAvailable(AppError):
    status_code = 401
    code = "NO_CREDENTIAL"
    default_message = "No Todoist token available"


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request."


class UpstreamError(AppError):
    """Non-success response (or transport failure) from an external service."""

    code = "UPSTREAM_ERROR"
    default_message = "Upstream request failed."

    def __init__(
        self,
        message: str | None = None,
        details: Mapping[str, Any] | None = None,
        *,
        status: int | None = None,
        service: str = "todoist",
        code: str | None = None,
    ) -> None:
        merged = {"status": status, "service": service}
        merged.update(details or {})
        super().__init__(message, merged, code=code)
        self.status = status
        self.service = service


class ModelError(AppError):
    code = "MODEL_ERROR"
    default_message = "The language model produced no usable output."


def success_response(payload: dict[str, Any]) -> dict[str, Any]:
    """Wrap a successful response in the standard envelope."""
    return {"ok": True, "data": payload}


def error_response(error: ErrorResponse) -> dict[str, Any]:
    """Wrap an error response in the standard envelope."""
    return {"ok": False, **error.to_dict()}
