"""Settings provider for the chat backend.

Provides a cached settings instance to avoid repeated environment parsing on
each request.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

StreamFormat = Literal["ndjson", "sse"]

_STREAM_FORMATS: tuple[StreamFormat, ...] = ("ndjson", "sse")


class ServerSettings(BaseModel, frozen=True):
    """Backend configuration loaded from environment variables."""

    storage_dir: str = ".data"
    stream_format: StreamFormat = "ndjson"
    dedupe_window_seconds: float = 5.0
    suggestion_limit: int = 3
    allowed_origins: list[str] = Field(default_factory=list)


def _parse_list(value: str) -> list[str]:
    """Parse comma-separated string into list."""
    return [item.strip() for item in value.split(",") if item.strip()]


def _allowed_origins() -> list[str]:
    allowed = os.getenv("WEB_ALLOWED_ORIGINS")
    if allowed:
        return _parse_list(allowed)
    web_origin = os.getenv("WEB_ORIGIN")
    return [web_origin] if web_origin else []


def load_settings() -> ServerSettings:
    """Load settings from environment variables with defaults."""
    load_dotenv()

    stream_format = os.getenv("ELLEN_STREAM_FORMAT", "ndjson").lower()
    if stream_format not in _STREAM_FORMATS:
        msg = f"ELLEN_STREAM_FORMAT must be one of {', '.join(_STREAM_FORMATS)}, got {stream_format!r}."
        raise ValueError(msg)

    return ServerSettings(
        storage_dir=os.getenv("ELLEN_STORAGE_DIR", ".data"),
        stream_format=stream_format,
        dedupe_window_seconds=float(os.getenv("ELLEN_DEDUPE_WINDOW_SECONDS", "5.0")),
        suggestion_limit=int(os.getenv("ELLEN_SUGGESTION_LIMIT", "3")),
        allowed_origins=_allowed_origins(),
    )


@lru_cache
def get_settings() -> ServerSettings:
    """Return cached runtime settings."""
    return load_settings()
