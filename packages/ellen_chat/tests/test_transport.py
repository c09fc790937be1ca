import json

import httpx
import pytest
from ellen_chat.decoder import iter_payloads
from ellen_chat.errors import TransportError
from ellen_chat.transport import HttpChatTransport


@pytest.mark.asyncio
async def test_stream_chat_posts_message_and_yields_body() -> None:
    captured: list[httpx.Request] = []

    async def body():
        yield b'{"type":"token","content":"Hel'
        yield b'"}\n{"type":"token","content":"lo"}\n'

    async def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(
            200,
            headers={"content-type": "application/x-ndjson"},
            content=body(),
        )

    async_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = HttpChatTransport("http://test/", async_client)

    async with transport.stream_chat("s1", "Hello", project_id="p1") as chunks:
        payloads = [payload async for payload in iter_payloads(chunks)]
    await transport.close()

    assert payloads == ['{"type":"token","content":"Hel"}', '{"type":"token","content":"lo"}']
    request = captured[0]
    assert request.url == "http://test/api/chat"
    assert json.loads(request.content) == {
        "session_id": "s1",
        "message": "Hello",
        "project_id": "p1",
    }
    assert "text/event-stream" in request.headers["accept"]


@pytest.mark.asyncio
async def test_stream_chat_raises_on_error_status() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"detail": "Request already in progress"})

    async_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = HttpChatTransport("http://test", async_client)

    with pytest.raises(TransportError, match="already in progress") as exc_info:
        async with transport.stream_chat("s1", "Hello"):
            pass
    await transport.close()

    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_stream_chat_raises_on_missing_body() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(204)

    async_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = HttpChatTransport("http://test", async_client)

    with pytest.raises(TransportError, match="no body"):
        async with transport.stream_chat("s1", "Hello"):
            pass
    await transport.close()


@pytest.mark.asyncio
async def test_stream_chat_wraps_connection_errors() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = HttpChatTransport("http://test", async_client, chat_path="/chat")

    with pytest.raises(TransportError, match="connection refused") as exc_info:
        async with transport.stream_chat("s1", "Hello"):
            pass
    await transport.close()

    assert exc_info.value.status_code is None
