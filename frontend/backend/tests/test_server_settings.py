"""Tests for backend settings loading."""

from __future__ import annotations

import pytest
from ellen_web_backend.settings import load_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in (
        "ELLEN_STORAGE_DIR",
        "ELLEN_STREAM_FORMAT",
        "ELLEN_DEDUPE_WINDOW_SECONDS",
        "ELLEN_SUGGESTION_LIMIT",
        "WEB_ALLOWED_ORIGINS",
        "WEB_ORIGIN",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = load_settings()
    assert settings.stream_format == "ndjson"
    assert settings.dedupe_window_seconds == 5.0
    assert settings.suggestion_limit == 3
    assert settings.allowed_origins == []


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("ELLEN_STREAM_FORMAT", "SSE")
    monkeypatch.setenv("ELLEN_SUGGESTION_LIMIT", "5")
    monkeypatch.setenv("WEB_ALLOWED_ORIGINS", "http://a.test, http://b.test")

    settings = load_settings()

    assert settings.stream_format == "sse"
    assert settings.suggestion_limit == 5
    assert settings.allowed_origins == ["http://a.test", "http://b.test"]


def test_single_web_origin(monkeypatch) -> None:
    monkeypatch.setenv("WEB_ORIGIN", "http://localhost:3000")
    assert load_settings().allowed_origins == ["http://localhost:3000"]


def test_unknown_stream_format_rejected(monkeypatch) -> None:
    monkeypatch.setenv("ELLEN_STREAM_FORMAT", "xml")
    with pytest.raises(ValueError, match="ELLEN_STREAM_FORMAT"):
        load_settings()
