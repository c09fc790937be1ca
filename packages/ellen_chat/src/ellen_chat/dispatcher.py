"""Routing of decoded stream lines to typed handlers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ellen_chat.errors import MalformedLineError, UpstreamError
from ellen_chat.events import (
    ErrorEvent,
    MaterialsEvent,
    SourcesEvent,
    StreamEvent,
    SuggestionsEvent,
    TokenEvent,
    parse_stream_event,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from ellen_chat.models import Material, Source

logger = logging.getLogger(__name__)


def _ignore(_payload: object) -> None:
    return None


def _always_active() -> bool:
    return True


@dataclass(frozen=True)
class StreamHandlers:
    """Callbacks invoked for each kind of stream event.

    `on_token` always receives the cumulative assistant content, never a delta.
    """

    on_token: Callable[[str], None] = _ignore
    on_sources: Callable[[list[Source]], None] = _ignore
    on_materials: Callable[[list[Material]], None] = _ignore
    on_suggestions: Callable[[list[str]], None] = _ignore
    on_error: Callable[[UpstreamError], None] = _ignore


class EventDispatcher:
    """Parses stream lines and routes each event to exactly one handler.

    Malformed lines are logged and skipped so one corrupted chunk cannot lose
    the rest of an answer. Events arriving after `is_active` turns False are
    dropped without touching any handler.
    """

    def __init__(
        self,
        handlers: StreamHandlers,
        *,
        is_active: Callable[[], bool] = _always_active,
    ) -> None:
        self._handlers = handlers
        self._is_active = is_active
        self._text_buffer: list[str] = []
        self.skipped: list[MalformedLineError] = []
        self.upstream_errors: list[UpstreamError] = []

    @property
    def content(self) -> str:
        """Return the assistant content accumulated so far."""
        return "".join(self._text_buffer)

    @property
    def failed(self) -> bool:
        """Return True once the server reported an error event."""
        return bool(self.upstream_errors)

    def dispatch_line(self, line: str) -> StreamEvent | None:
        """Parse and apply one payload line.

        Returns the applied event, or None when the line was skipped or the
        request is no longer active.
        """
        if not self._is_active():
            return None
        try:
            event = parse_stream_event(line)
        except MalformedLineError as exc:
            self.skipped.append(exc)
            logger.warning("Skipping stream line: %s", exc)
            return None
        return event if self.dispatch(event) else None

    def dispatch(self, event: StreamEvent) -> bool:
        """Apply an already parsed event. Returns False if it was dropped."""
        if not self._is_active():
            return False

        if isinstance(event, TokenEvent):
            self._text_buffer.append(event.content)
            self._handlers.on_token(self.content)
        elif isinstance(event, SourcesEvent):
            logger.debug("Received %d sources", len(event.content))
            self._handlers.on_sources(event.content)
        elif isinstance(event, MaterialsEvent):
            logger.debug("Received %d materials", len(event.content))
            self._handlers.on_materials(event.content)
        elif isinstance(event, SuggestionsEvent):
            logger.debug("Received %d suggestions", len(event.content))
            self._handlers.on_suggestions(event.content)
        elif isinstance(event, ErrorEvent):
            error = UpstreamError(event.message)
            self.upstream_errors.append(error)
            logger.warning("Upstream reported error: %s", error)
            self._handlers.on_error(error)
        return True
