"""FastAPI dependency injection for shared services.

Services are created lazily and cached, so tests can swap any of them through
`app.dependency_overrides` without module-level monkey-patching.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from ellen_web_backend.services.completion import CompletionProvider, ScriptedCompletionProvider
from ellen_web_backend.services.dedupe import RequestDeduplicator
from ellen_web_backend.settings import ServerSettings, get_settings
from ellen_web_backend.storage import Storage


def _storage_path(settings: ServerSettings) -> Path:
    return Path(settings.storage_dir) / "ellen_chat.db"


@lru_cache
def get_storage() -> Storage:
    """Get the Storage instance (cached singleton)."""
    return Storage(_storage_path(get_settings()))


@lru_cache
def get_completion_provider() -> CompletionProvider:
    """Get the completion provider used to answer chat messages."""
    return ScriptedCompletionProvider()


@lru_cache
def get_deduplicator() -> RequestDeduplicator:
    """Get the process-wide duplicate-request guard."""
    return RequestDeduplicator(get_settings().dedupe_window_seconds)
