from __future__ import annotations

import pytest
from chat_fakes import FakeSessionStore


@pytest.fixture
def store() -> FakeSessionStore:
    return FakeSessionStore()


@pytest.fixture(autouse=True)
def _clear_client_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "ELLEN_API_BASE_URL",
        "ELLEN_CHAT_PATH",
        "ELLEN_SESSIONS_PATH",
        "ELLEN_REQUEST_TIMEOUT",
        "ELLEN_CONNECT_TIMEOUT",
        "ELLEN_PROJECT_ID",
    ):
        monkeypatch.delenv(name, raising=False)
