import logging

import httpx
import pytest
from ellen_chat import settings as settings_module
from ellen_chat.factory import create_chat_controller
from ellen_chat.lifecycle import ChatSessionController
from ellen_chat.logging_utils import (
    SessionContextFilter,
    bind_session_id,
    install_session_log_filter,
    set_request_id,
)
from ellen_chat.settings import ClientSettings, load_settings


def test_load_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ELLEN_API_BASE_URL", "http://localhost:8000/")

    settings = load_settings()

    assert settings.api_base_url == "http://localhost:8000"
    assert settings.chat_path == "/api/chat"
    assert settings.sessions_path == "/api/sessions"
    assert settings.request_timeout == 120.0
    assert settings.connect_timeout == 10.0
    assert settings.project_id is None


def test_load_settings_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ELLEN_API_BASE_URL", "https://ellen.example")
    monkeypatch.setenv("ELLEN_REQUEST_TIMEOUT", "30")
    monkeypatch.setenv("ELLEN_PROJECT_ID", "project-7")

    settings = load_settings()

    assert settings.request_timeout == 30.0
    assert settings.project_id == "project-7"


def test_load_settings_requires_base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings_module, "load_dotenv", lambda: False)

    with pytest.raises(ValueError, match="ELLEN_API_BASE_URL"):
        load_settings()


@pytest.mark.asyncio
async def test_create_chat_controller_uses_given_client() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "s1", "messages": []})

    settings = ClientSettings(api_base_url="http://test", project_id="p1")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        controller = create_chat_controller(settings, http_client=client)
        session = await controller.load("s1")

    assert isinstance(controller, ChatSessionController)
    assert session.id == "s1"


def test_session_filter_attaches_context_ids() -> None:
    record = logging.LogRecord("ellen_chat", logging.INFO, __file__, 1, "msg", None, None)
    flt = SessionContextFilter()

    flt.filter(record)
    assert (record.request_id, record.session_id) == ("-", "-")

    set_request_id("req-1")
    try:
        with bind_session_id("s1"):
            flt.filter(record)
    finally:
        set_request_id(None)
    assert (record.request_id, record.session_id) == ("req-1", "s1")


def test_install_session_log_filter_is_idempotent() -> None:
    logger = logging.getLogger("ellen_chat.test_filter")

    install_session_log_filter([logger])
    install_session_log_filter([logger])

    assert sum(isinstance(flt, SessionContextFilter) for flt in logger.filters) == 1
