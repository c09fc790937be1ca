"""Services for the chat backend."""

from ellen_web_backend.services.chat_stream import ChatStreamState, stream_chat_events
from ellen_web_backend.services.completion import (
    CompletionChunk,
    CompletionError,
    CompletionProvider,
    ScriptedCompletionProvider,
)
from ellen_web_backend.services.dedupe import (
    DuplicateRequestError,
    RequestDeduplicator,
    RequestInProgressError,
)
from ellen_web_backend.services.metadata import AnswerMetadata, extract_metadata

__all__ = [
    "AnswerMetadata",
    "ChatStreamState",
    "CompletionChunk",
    "CompletionError",
    "CompletionProvider",
    "DuplicateRequestError",
    "RequestDeduplicator",
    "RequestInProgressError",
    "ScriptedCompletionProvider",
    "extract_metadata",
    "stream_chat_events",
]
