"""HTTP transport for streamed chat completions."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from ellen_chat.errors import TransportError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from contextlib import AbstractAsyncContextManager

logger = logging.getLogger(__name__)

STREAM_ACCEPT = "text/event-stream, application/x-ndjson"


class ChatTransport(Protocol):
    """Opens a streamed chat completion for one user message."""

    def stream_chat(
        self,
        session_id: str,
        message: str,
        *,
        project_id: str | None = None,
    ) -> AbstractAsyncContextManager[AsyncIterator[bytes]]:
        """Return a context manager yielding the response body as byte chunks.

        Entering the context raises TransportError when the response is not
        usable (connection failure, non-OK status, no body).
        """
        ...


class HttpChatTransport:
    """Chat transport backed by an httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        *,
        chat_path: str = "/api/chat",
    ) -> None:
        """Initialize the transport."""
        self._url = f"{base_url.rstrip('/')}{chat_path}"
        self._client = client or httpx.AsyncClient(timeout=120.0)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    @asynccontextmanager
    async def stream_chat(
        self,
        session_id: str,
        message: str,
        *,
        project_id: str | None = None,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """POST the message and yield the streamed response body."""
        payload: dict[str, Any] = {"session_id": session_id, "message": message}
        if project_id:
            payload["project_id"] = project_id
        request = self._client.build_request(
            "POST",
            self._url,
            json=payload,
            headers={"Accept": STREAM_ACCEPT},
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            msg = f"Chat request failed: {exc}"
            raise TransportError(msg) from exc

        try:
            if response.is_error:
                detail = await _read_error_detail(response)
                msg = f"Chat request failed with status {response.status_code}: {detail}"
                raise TransportError(msg, status_code=response.status_code)
            if response.status_code == httpx.codes.NO_CONTENT:
                msg = "Chat response has no body"
                raise TransportError(msg, status_code=response.status_code)
            logger.debug(
                "Chat stream opened (status=%s, content-type=%s)",
                response.status_code,
                response.headers.get("content-type", ""),
            )
            yield response.aiter_bytes()
        finally:
            await response.aclose()


async def _read_error_detail(response: httpx.Response) -> str:
    try:
        await response.aread()
    except httpx.HTTPError:
        return response.reason_phrase
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(data, dict):
        return str(data.get("detail") or data.get("error") or data)
    return str(data)
