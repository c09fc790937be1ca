"""Tests for the pure session reducers."""

from __future__ import annotations

from ellen_chat.models import Material, Message, Session, Source, Thread
from ellen_chat.store import (
    append_optimistic_thread,
    apply_extras_update,
    apply_token_update,
    new_temporary_id,
    reconcile_with_authoritative,
    set_streaming,
)


def test_new_temporary_id_is_provisional() -> None:
    first = new_temporary_id()

    assert first.startswith("temp-")
    assert first != new_temporary_id()


def test_append_optimistic_thread_returns_new_session() -> None:
    session = Session(id="s1")

    updated = append_optimistic_thread(session, "What is lithium?", thread_id="temp-abc")

    assert session.threads == ()
    assert updated is not session
    thread = updated.threads[-1]
    assert thread.id == "temp-abc"
    assert thread.is_provisional
    assert thread.user_message == Message(
        id="temp-abc-user", role="user", content="What is lithium?", session_id="s1"
    )
    assert thread.assistant_message is not None
    assert thread.assistant_message.id == "temp-abc-assistant"
    assert thread.assistant_message.content == ""
    assert (thread.sources, thread.materials, thread.suggestions) == ((), (), ())


def test_apply_token_update_only_touches_last_thread() -> None:
    session = append_optimistic_thread(Session(id="s1"), "first", thread_id="temp-1")
    session = append_optimistic_thread(session, "second", thread_id="temp-2")

    updated = apply_token_update(session, "Hello")

    assert updated.threads[0] is session.threads[0]
    assert updated.threads[1].assistant_message.content == "Hello"
    assert session.threads[1].assistant_message.content == ""


def test_apply_token_update_without_threads_is_noop() -> None:
    session = Session(id="s1")

    assert apply_token_update(session, "Hello") is session


def test_apply_token_update_creates_missing_assistant_message() -> None:
    session = Session(
        id="s1",
        threads=(
            Thread(
                id="t1",
                user_message=Message(id="u1", role="user", content="hi"),
                assistant_message=None,
            ),
        ),
    )

    updated = apply_token_update(session, "Hey")

    assert updated.threads[0].assistant_message == Message(
        id="t1-assistant", role="assistant", content="Hey", session_id="s1"
    )


def test_extras_replace_rather_than_merge() -> None:
    session = append_optimistic_thread(Session(id="s1"), "q", thread_id="temp-1")

    session = apply_extras_update(session, "sources", [Source(title="A")])
    session = apply_extras_update(session, "sources", [{"title": "B"}])

    assert session.threads[-1].sources == (Source(title="B"),)


def test_apply_extras_update_materials_and_suggestions() -> None:
    session = append_optimistic_thread(Session(id="s1"), "q", thread_id="temp-1")

    session = apply_extras_update(session, "materials", ["Lithium"])
    session = apply_extras_update(session, "suggestions", ["Why?", "How?"])

    thread = session.threads[-1]
    assert thread.materials == (Material(material="Lithium"),)
    assert thread.suggestions == ("Why?", "How?")


def test_reconcile_replaces_threads_and_keeps_streaming_flag() -> None:
    current = set_streaming(
        append_optimistic_thread(Session(id="s1"), "q", thread_id="temp-1"), True
    )
    loaded = Session(
        id="s1",
        title="q",
        threads=(
            Thread(
                id="thread-9",
                user_message=Message(id="m1", role="user", content="q"),
                assistant_message=Message(id="m2", role="assistant", content="answer"),
            ),
        ),
    )

    reconciled = reconcile_with_authoritative(current, loaded)

    assert reconciled.threads == loaded.threads
    assert reconciled.title == "q"
    assert reconciled.is_streaming is True
    assert not reconciled.threads[-1].is_provisional


def test_reconcile_ignores_other_session() -> None:
    current = Session(id="s1")

    assert reconcile_with_authoritative(current, Session(id="s2")) is current


def test_set_streaming_returns_same_object_when_unchanged() -> None:
    session = Session(id="s1")

    assert set_streaming(session, False) is session
    assert set_streaming(session, True).is_streaming is True
