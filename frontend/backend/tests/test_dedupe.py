"""Tests for the duplicate-request guard."""

from __future__ import annotations

import pytest
from ellen_web_backend.services.dedupe import (
    DuplicateRequestError,
    RequestDeduplicator,
    RequestInProgressError,
    request_key,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_request_key_format() -> None:
    assert request_key("s1", "hello") == "chat:s1:hello"
    assert request_key(None, "hello") == "chat::hello"


def test_duplicate_within_window_rejected() -> None:
    clock = FakeClock()
    guard = RequestDeduplicator(5.0, clock=clock)
    guard.acquire("k")
    guard.release("k")

    clock.now += 4.9
    with pytest.raises(DuplicateRequestError):
        guard.acquire("k")


def test_key_reusable_after_window() -> None:
    clock = FakeClock()
    guard = RequestDeduplicator(5.0, clock=clock)
    guard.acquire("k")
    guard.release("k")

    clock.now += 5.0
    guard.acquire("k")

    assert guard.is_locked("k")


def test_held_lock_reports_in_progress() -> None:
    clock = FakeClock()
    guard = RequestDeduplicator(1.0, clock=clock)
    guard.acquire("k")

    clock.now += 2.0
    with pytest.raises(RequestInProgressError):
        guard.acquire("k")


def test_distinct_keys_do_not_interfere() -> None:
    guard = RequestDeduplicator(5.0, clock=FakeClock())
    guard.acquire(request_key("s1", "hello"))
    guard.acquire(request_key("s2", "hello"))

    assert guard.is_locked(request_key("s1", "hello"))
    assert guard.is_locked(request_key("s2", "hello"))
