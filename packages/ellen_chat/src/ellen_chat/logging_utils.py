"""Logging helpers for request and session correlation."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

_request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
_session_id_ctx: ContextVar[str | None] = ContextVar("session_id", default=None)


def get_request_id() -> str | None:
    """Return the current request id if set."""
    return _request_id_ctx.get()


def set_request_id(request_id: str | None) -> None:
    """Set the current request id."""
    _request_id_ctx.set(request_id)


def get_session_id() -> str | None:
    """Return the chat session id bound to the current context."""
    return _session_id_ctx.get()


@contextmanager
def bind_session_id(session_id: str | None) -> Iterator[None]:
    """Bind a session id to log records emitted inside the block."""
    token = _session_id_ctx.set(session_id)
    try:
        yield
    finally:
        _session_id_ctx.reset(token)


class SessionContextFilter(logging.Filter):
    """Attach request and session identifiers to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Inject request_id and session_id into the log record."""
        record.request_id = get_request_id() or "-"
        record.session_id = get_session_id() or "-"
        return True


def install_session_log_filter(loggers: Iterable[logging.Logger] | None = None) -> None:
    """Install session context filters for structured logging.

    Args:
        loggers: Optional iterable of loggers to attach the filter to. Defaults to root logger.
    """
    targets = list(loggers) if loggers is not None else [logging.getLogger()]
    for logger in targets:
        if any(isinstance(flt, SessionContextFilter) for flt in logger.filters):
            continue
        logger.addFilter(SessionContextFilter())
