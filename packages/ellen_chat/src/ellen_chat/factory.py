"""Wiring of the chat controller with its HTTP collaborators.

Collaborators share one explicitly constructed `httpx.AsyncClient`; nothing is
created at import time, so tests can pass their own client or fakes.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import httpx

from ellen_chat.lifecycle import ChatSessionController
from ellen_chat.persistence import HttpSessionStore
from ellen_chat.settings import ClientSettings, load_settings
from ellen_chat.transport import HttpChatTransport

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ellen_chat.models import Session


def build_http_client(settings: ClientSettings) -> httpx.AsyncClient:
    """Create the HTTP client used for both streaming and session calls."""
    timeout = httpx.Timeout(settings.request_timeout, connect=settings.connect_timeout)
    return httpx.AsyncClient(timeout=timeout)


def create_chat_controller(
    settings: ClientSettings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    session: Session | None = None,
) -> ChatSessionController:
    """Build a controller talking to the configured chat backend.

    The caller owns `http_client` and must close it.
    """
    settings = settings or load_settings()
    client = http_client or build_http_client(settings)
    transport = HttpChatTransport(settings.api_base_url, client, chat_path=settings.chat_path)
    store = HttpSessionStore(
        settings.api_base_url,
        client,
        sessions_path=settings.sessions_path,
        chat_path=settings.chat_path,
    )
    return ChatSessionController(
        transport,
        store,
        project_id=settings.project_id,
        session=session,
    )


@asynccontextmanager
async def open_chat_controller(
    settings: ClientSettings | None = None,
) -> AsyncIterator[ChatSessionController]:
    """Yield a controller whose HTTP client is closed on exit."""
    settings = settings or load_settings()
    async with build_http_client(settings) as client:
        yield create_chat_controller(settings, http_client=client)
