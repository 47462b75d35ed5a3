"""Configuration loading for the tasksplit service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_TODOIST_API_BASE = "https://api.todoist.com/rest/v2"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_TODOIST_TIMEOUT = 30.0


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class AppConfig:
    data_path: Path
    session_secret: str
    todoist_api_token: str | None = None
    todoist_api_base: str = DEFAULT_TODOIST_API_BASE
    todoist_timeout: float = DEFAULT_TODOIST_TIMEOUT
    google_client_id: str | None = None
    google_client_secret: str | None = None
    gemini_api_key: str | None = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    https_only: bool = False
    log_level: str = "INFO"


def _read_dotenv_value(dotenv_path: Path, key: str) -> str | None:
    """Read a single key from a .env file without mutating the environment."""
    if not dotenv_path.is_file():
        return None
    try:
        content = dotenv_path.read_text(encoding="utf-8")
    except OSError:
        return None

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export ") :].strip()
        if "=" not in stripped:
            continue
        name, value = stripped.split("=", 1)
        name = name.strip()
        if name != key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        return value or None
    return None


def _read_value(dotenv_path: Path, key: str) -> str | None:
    raw_value = os.environ.get(key)
    if raw_value is None:
        raw_value = _read_dotenv_value(dotenv_path, key)
    if raw_value is None:
        return None
    raw_value = raw_value.strip()
    return raw_value or None


def _read_bool(raw_value: str | None, *, default: bool, key: str) -> bool:
    if raw_value is None:
        return default
    normalized = raw_value.strip().lower()
    if not normalized:
        return default
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"{key} must be a boolean value.")


def _read_float(raw_value: str | None, *, default: float, key: str) -> float:
    if raw_value is None:
        return default
    try:
        value = float(raw_value)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number.") from exc
    if value <= 0:
        raise ConfigError(f"{key} must be greater than zero.")
    return value


def load_config() -> AppConfig:
    """Load required configuration from the environment."""
    dotenv_path = Path.cwd() / ".env"

    raw_path = _read_value(dotenv_path, "TASKSPLIT_DATA_PATH")
    if not raw_path:
        raise ConfigError(
            "TASKSPLIT_DATA_PATH is required; set it to the data root path."
        )

    session_secret = _read_value(dotenv_path, "TASKSPLIT_SESSION_SECRET")
    if not session_secret:
        raise ConfigError(
            "TASKSPLIT_SESSION_SECRET is required to sign session cookies."
        )

    todoist_api_base = (
        _read_value(dotenv_path, "TASKSPLIT_TODOIST_API_BASE")
        or DEFAULT_TODOIST_API_BASE
    )
    timeout_key = "TODOIST_TIMEOUT_SECONDS"
    todoist_timeout = _read_float(
        _read_value(dotenv_path, timeout_key),
        default=DEFAULT_TODOIST_TIMEOUT,
        key=timeout_key,
    )
    https_key = "TASKSPLIT_HTTPS_ONLY"
    https_only = _read_bool(
        _read_value(dotenv_path, https_key), default=False, key=https_key
    )

    return AppConfig(
        data_path=Path(raw_path).resolve(),
        session_secret=session_secret,
        todoist_api_token=_read_value(dotenv_path, "TODOIST_API_TOKEN"),
        todoist_api_base=todoist_api_base.rstrip("/"),
        todoist_timeout=todoist_timeout,
        google_client_id=_read_value(dotenv_path, "GOOGLE_CLIENT_ID"),
        google_client_secret=_read_value(dotenv_path, "GOOGLE_CLIENT_SECRET"),
        gemini_api_key=_read_value(dotenv_path, "GOOGLE_GEMINI_API_KEY"),
        gemini_model=_read_value(dotenv_path, "TASKSPLIT_GEMINI_MODEL")
        or DEFAULT_GEMINI_MODEL,
        https_only=https_only,
        log_level=(_read_value(dotenv_path, "TASKSPLIT_LOG_LEVEL") or "INFO").upper(),
    )
