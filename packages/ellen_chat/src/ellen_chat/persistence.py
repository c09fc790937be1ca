"""Read/write access to the persistent session store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from ellen_chat.errors import SessionNotFoundError, SessionStoreError
from ellen_chat.models import Session

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Creates sessions and loads their authoritative thread history."""

    async def create_session(
        self,
        title: str,
        *,
        project_id: str | None = None,
        initial_query: str | None = None,
    ) -> Session: ...

    async def fetch_session(self, session_id: str) -> Session: ...


class HttpSessionStore:
    """Session store backed by the chat backend's REST API."""

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        *,
        sessions_path: str = "/api/sessions",
        chat_path: str = "/api/chat",
    ) -> None:
        """Initialize the store client."""
        base = base_url.rstrip("/")
        self._sessions_url = f"{base}{sessions_path}"
        self._chat_url = f"{base}{chat_path}"
        self._client = client or httpx.AsyncClient(timeout=30.0)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def create_session(
        self,
        title: str,
        *,
        project_id: str | None = None,
        initial_query: str | None = None,
    ) -> Session:
        """Create a new session and return it."""
        payload: dict[str, Any] = {"title": title, "metadata": {}}
        if project_id:
            payload["project_id"] = project_id
        if initial_query:
            payload["metadata"]["initial_query"] = initial_query
        data = await self._request("POST", self._sessions_url, json=payload)
        session = _to_session(data)
        logger.info("Created session %s", session.id)
        return session

    async def fetch_session(self, session_id: str) -> Session:
        """Load the authoritative session view."""
        data = await self._request("GET", f"{self._chat_url}/{session_id}")
        return _to_session(data)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            msg = f"Session request failed: {exc}"
            raise SessionStoreError(msg) from exc
        if response.status_code == httpx.codes.NOT_FOUND:
            msg = f"Session not found: {url.rsplit('/', 1)[-1]}"
            raise SessionNotFoundError(msg)
        if response.is_error:
            msg = f"Session request failed with status {response.status_code}"
            raise SessionStoreError(msg)
        try:
            return response.json()
        except ValueError as exc:
            msg = "Session response is not valid JSON"
            raise SessionStoreError(msg) from exc


def _to_session(data: Any) -> Session:
    if not isinstance(data, dict):
        msg = "Session response must be a JSON object"
        raise SessionStoreError(msg)
    payload: Mapping[str, Any] = data.get("session") if isinstance(data.get("session"), dict) else data
    try:
        session = Session.from_dict(payload)
    except ValueError as exc:
        msg = f"Invalid session payload: {exc}"
        raise SessionStoreError(msg) from exc
    if not session.id:
        msg = "Session payload has no id"
        raise SessionStoreError(msg)
    return session
