"""Duplicate-submission guard for chat requests."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class DuplicateRequestError(RuntimeError):
    """The same request was seen within the dedupe window."""


class RequestInProgressError(RuntimeError):
    """An identical request is still being streamed."""


def request_key(session_id: str | None, message: str) -> str:
    """Return the dedupe key for a session/message pair."""
    return f"chat:{session_id or ''}:{message}"


class RequestDeduplicator:
    """Rejects repeated submissions of the same message to the same session.

    A key seen less than `window_seconds` ago is a duplicate. A key whose
    previous request has not released its lock yet is in progress.
    """

    def __init__(self, window_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._window = window_seconds
        self._clock = clock
        self._recent: dict[str, float] = {}
        self._locks: set[str] = set()

    def acquire(self, key: str) -> None:
        """Register a new request for `key` or raise if it must be rejected."""
        now = self._clock()
        self._prune(now)
        seen_at = self._recent.get(key)
        if seen_at is not None and now - seen_at < self._window:
            logger.info("Rejecting duplicate request %s", key)
            msg = "Duplicate request"
            raise DuplicateRequestError(msg)
        if key in self._locks:
            logger.info("Rejecting request already in progress %s", key)
            msg = "Request in progress"
            raise RequestInProgressError(msg)
        self._locks.add(key)
        self._recent[key] = now

    def release(self, key: str) -> None:
        """Release the in-progress lock for `key`."""
        self._locks.discard(key)

    def is_locked(self, key: str) -> bool:
        return key in self._locks

    def _prune(self, now: float) -> None:
        expired = [key for key, seen_at in self._recent.items() if now - seen_at >= self._window]
        for key in expired:
            del self._recent[key]
