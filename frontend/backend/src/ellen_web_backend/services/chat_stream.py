"""Streaming service for chat answers.

Runs the completion provider for one user message and encodes its output as
stream events (`token`, then `sources`, `materials` and `suggestions`, or an
`error`). The assistant message is persisted once the stream ends.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from ellen_chat.decoder import DONE_SENTINEL
from ellen_chat.events import (
    ErrorEvent,
    MaterialsEvent,
    SourcesEvent,
    SuggestionsEvent,
    TokenEvent,
)
from ellen_chat.models import Material, Source
from fastapi.responses import StreamingResponse

from ellen_web_backend.services.metadata import AnswerMetadata, extract_metadata
from ellen_web_backend.storage import MessageRecord

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

    from starlette.types import Receive, Scope, Send

    from ellen_chat.events import StreamEvent

    from ellen_web_backend.services.completion import CompletionProvider
    from ellen_web_backend.settings import StreamFormat
    from ellen_web_backend.storage import Storage

logger = logging.getLogger(__name__)

STREAM_ERROR_MESSAGE = "An unexpected error occurred while generating the answer."

MEDIA_TYPES: dict[str, str] = {
    "ndjson": "application/x-ndjson",
    "sse": "text/event-stream",
}


class ReleasingStreamingResponse(StreamingResponse):
    """Streaming response that runs `on_close` once the ASGI call ends.

    Runs on completion, on error and on client disconnect, including a
    disconnect before the body iterator was ever started.
    """

    def __init__(self, content: Any, *, on_close: Callable[[], None], **kwargs: Any) -> None:
        super().__init__(content, **kwargs)
        self._on_close = on_close

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self._on_close()


def encode_event(event: StreamEvent, stream_format: StreamFormat) -> bytes:
    """Encode one event in the configured wire framing."""
    payload = event.model_dump_json(exclude_none=True)
    if stream_format == "sse":
        return f"data: {payload}\n\n".encode()
    return f"{payload}\n".encode()


def encode_done(stream_format: StreamFormat) -> bytes:
    """Return the end-of-stream marker, if the framing has one."""
    if stream_format == "sse":
        return f"data: {DONE_SENTINEL}\n\n".encode()
    return b""


@dataclass
class ChatStreamState:
    """Accumulates the answer and its extras during streaming."""

    text_buffer: list[str] = field(default_factory=list)
    metadata: AnswerMetadata | None = None
    sources: list[Source] = field(default_factory=list)
    materials: list[Material] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.text_buffer)


def resolve_sources(raw: list[dict[str, Any]], prefix: str) -> list[Source]:
    """Validate source records and give each a stable id."""
    sources: list[Source] = []
    for index, item in enumerate(raw):
        source = Source.model_validate(item)
        if not source.id:
            source = source.model_copy(update={"id": f"{prefix}-{index}"})
        sources.append(source)
    return sources


def resolve_materials(storage: Storage, names: list[str]) -> list[Material]:
    """Look up stored material records, falling back to bare names."""
    if not names:
        return []
    stored = {record["material"]: record for record in storage.lookup_materials(names)}
    return [Material.model_validate(stored.get(name, name)) for name in names]


async def stream_chat_events(
    *,
    storage: Storage,
    provider: CompletionProvider,
    session_id: str,
    message: str,
    stream_format: StreamFormat,
    suggestion_limit: int = 3,
) -> AsyncGenerator[bytes]:
    """Stream the answer to `message` and persist it when done.

    The user message must already be stored.
    """
    state = ChatStreamState()
    try:
        history = storage.list_messages(session_id)
        try:
            async for chunk in provider.stream(history, message):
                if chunk.text:
                    state.text_buffer.append(chunk.text)
                    yield encode_event(TokenEvent(type="token", content=chunk.text), stream_format)
                if chunk.metadata is not None:
                    state.metadata = chunk.metadata

            metadata = state.metadata or extract_metadata(
                state.text, suggestion_limit=suggestion_limit
            )
            state.sources = resolve_sources(metadata.sources, prefix=f"s-{uuid4().hex[:8]}")
            state.materials = resolve_materials(storage, metadata.related_materials)
            state.suggestions = metadata.suggested_questions[:suggestion_limit]
        except Exception:
            logger.exception("Completion stream failed for session %s", session_id)
            yield encode_event(ErrorEvent(type="error", content=STREAM_ERROR_MESSAGE), stream_format)
        else:
            yield encode_event(SourcesEvent(type="sources", content=state.sources), stream_format)
            yield encode_event(MaterialsEvent(type="materials", content=state.materials), stream_format)
            yield encode_event(
                SuggestionsEvent(type="suggestions", content=state.suggestions), stream_format
            )
        done = encode_done(stream_format)
        if done:
            yield done
    finally:
        if state.text:
            _save_assistant_message(storage, session_id, state)


def _save_assistant_message(storage: Storage, session_id: str, state: ChatStreamState) -> None:
    logger.info("Saving assistant message for session %s", session_id)
    storage.append_message(
        MessageRecord(
            message_id=str(uuid4()),
            session_id=session_id,
            role="assistant",
            content=state.text,
            created_at=datetime.now(UTC).isoformat(),
            sources=[source.model_dump(exclude_none=True) for source in state.sources],
            related_materials=[
                material.model_dump(exclude_none=True) for material in state.materials
            ],
            suggested_questions=list(state.suggestions),
        )
    )
