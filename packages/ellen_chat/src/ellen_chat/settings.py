"""Pydantic models for client settings."""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel


class ClientSettings(BaseModel, frozen=True):
    """Chat client configuration loaded from environment variables."""

    api_base_url: str
    chat_path: str = "/api/chat"
    sessions_path: str = "/api/sessions"
    request_timeout: float = 120.0
    connect_timeout: float = 10.0
    project_id: str | None = None


def load_settings() -> ClientSettings:
    """Load client settings from environment variables with defaults."""
    load_dotenv()

    api_base_url = os.getenv("ELLEN_API_BASE_URL")
    if not api_base_url:
        msg = (
            "ELLEN_API_BASE_URL environment variable is required. "
            "Point it at the chat backend, e.g. http://localhost:8000"
        )
        raise ValueError(msg)

    return ClientSettings(
        api_base_url=api_base_url.rstrip("/"),
        chat_path=os.getenv("ELLEN_CHAT_PATH", "/api/chat"),
        sessions_path=os.getenv("ELLEN_SESSIONS_PATH", "/api/sessions"),
        request_timeout=float(os.getenv("ELLEN_REQUEST_TIMEOUT", "120")),
        connect_timeout=float(os.getenv("ELLEN_CONNECT_TIMEOUT", "10")),
        project_id=os.getenv("ELLEN_PROJECT_ID") or None,
    )
