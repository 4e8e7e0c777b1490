from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """Timing and threshold settings for the synchronization engine."""

    search_debounce_seconds: float = 0.3
    search_min_length: int = 3
    range_cooldown_seconds: float = 0.5
    request_timeout_seconds: float = 10.0


def api_base_url() -> str:
    url = os.getenv("CATALOG_API_BASE_URL")

    if not url:
        raise RuntimeError("CATALOG_API_BASE_URL environment variable is not set")

    return url.rstrip("/")


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def load_settings() -> EngineSettings:
    """
    Build engine settings from environment variables, falling back to defaults.

    Raises:
        RuntimeError: If a variable is set but is not a valid number
    """
    return EngineSettings(
        search_debounce_seconds=_env_number("CATALOG_SEARCH_DEBOUNCE_MS", 300) / 1000,
        search_min_length=int(_env_number("CATALOG_SEARCH_MIN_LENGTH", 3)),
        range_cooldown_seconds=_env_number("CATALOG_RANGE_COOLDOWN_MS", 500) / 1000,
        request_timeout_seconds=_env_number("CATALOG_REQUEST_TIMEOUT_SECONDS", 10),
    )


def _env_number(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default

    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from None

    if value < 0:
        raise RuntimeError(f"{name} must be >= 0, got {raw!r}")

    return value
