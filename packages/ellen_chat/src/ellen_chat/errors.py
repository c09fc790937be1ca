"""Error taxonomy for the chat streaming core.

Everything derives from ChatError so the session controller can funnel any
failure into its single user-visible error slot.
"""

from __future__ import annotations

from typing import Literal

MalformedReason = Literal["invalid_json", "unknown_type", "invalid_content"]


class ChatError(Exception):
    """Base class for chat core errors."""


class TransportError(ChatError):
    """The byte stream itself failed (connection drop, non-OK status, no body)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(TransportError):
    """Reading from the underlying byte stream failed mid-stream."""


class MalformedLineError(ChatError):
    """A single stream line could not be turned into a StreamEvent.

    Raised by the parser only; the dispatcher records and skips it.
    """

    def __init__(self, reason: MalformedReason, line: str, detail: str = "") -> None:
        preview = line if len(line) <= 200 else line[:200] + "..."
        message = f"Malformed stream line ({reason}): {preview!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.reason = reason
        self.line = line


class UpstreamError(ChatError):
    """The server sent a deliberate `error` event."""


class SessionStoreError(ChatError):
    """Creating or fetching a session from the persistent store failed."""


class SessionNotFoundError(SessionStoreError):
    """The persistent store has no session with the requested id."""


class ReconciliationError(ChatError):
    """The authoritative reload after a completed stream failed."""
