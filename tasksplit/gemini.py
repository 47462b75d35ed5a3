"""Gemini language model access for prompts and chat histories."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from tasksplit.config import DEFAULT_GEMINI_MODEL
from tasksplit.errors import ModelError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)


class GeminiModel:
    """Stateless wrapper around the google-genai client.

    The SDK client is created lazily so the service starts without an API
    key; calls made without one fail with ModelError.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_GEMINI_MODEL,
        *,
        client: Any | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._client = client

    @property
    def model(self) -> str:
        return self._model

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise ModelError(
                    "Language model is not configured.",
                    {"setting": "GOOGLE_GEMINI_API_KEY"},
                )
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def generate(self, prompt: str) -> str:
        """Single-turn completion."""
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValidationError("prompt is required", {"fields": ["prompt"]})
        client = self._get_client()
        response = self._call(
            lambda: client.models.generate_content(model=self._model, contents=prompt)
        )
        return _response_text(response)

    def chat(self, messages: Sequence[dict[str, Any]]) -> str:
        """Answer the last message given the preceding turns as history."""
        contents = _to_contents(messages)
        client = self._get_client()
        last = contents[-1].parts[0].text

        def _send() -> Any:
            session = client.chats.create(model=self._model, history=contents[:-1])
            return session.send_message(last)

        return _response_text(self._call(_send))

    def _call(self, operation: Any) -> Any:
        try:
            return operation()
        except genai_errors.APIError as exc:
            logger.error("Gemini returned %s: %s", exc.code, exc.message)
            raise UpstreamError(
                f"Failed to get response from Gemini: {exc.message}",
                status=exc.code,
                service="gemini",
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Gemini request failed: %s", exc)
            raise ModelError(
                f"Failed to get response from Gemini: {exc.__class__.__name__}",
                {"model": self._model},
            ) from exc


def _to_contents(messages: Sequence[dict[str, Any]]) -> list[types.Content]:
    if not isinstance(messages, (list, tuple)) or not messages:
        raise ValidationError("messages must be a non-empty array.", {"fields": ["messages"]})
    contents: list[types.Content] = []
    for index, message in enumerate(messages):
        if not isinstance(message, dict):
            raise ValidationError("Each message must be an object.", {"index": index})
        text = message.get("content")
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Each message needs text content.", {"index": index})
        role = "user" if message.get("role") == "user" else "model"
        contents.append(types.Content(role=role, parts=[types.Part(text=text)]))
    return contents


def _response_text(response: Any) -> str:
    text = getattr(response, "text", None)
    if not isinstance(text, str) or not text.strip():
        logger.warning("Gemini response carried no text")
        raise ModelError()
    return text
