"""Pure session reducers.

Every function takes the current Session and returns a new one; inputs are
never mutated. Only the last thread of a session is ever updated by a stream,
and these functions are the only place that rule is encoded.
"""

from __future__ import annotations

import secrets
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from ellen_chat.models import TEMP_ID_PREFIX, Material, Message, Session, Source, Thread

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ellen_chat.events import ExtrasKind


def new_temporary_id() -> str:
    """Return a client-generated thread id that the server will later replace."""
    return f"{TEMP_ID_PREFIX}{secrets.token_hex(4)}"


def append_optimistic_thread(
    session: Session, user_content: str, *, thread_id: str | None = None
) -> Session:
    """Append a provisional thread with an empty assistant reply."""
    thread_id = thread_id or new_temporary_id()
    thread = Thread(
        id=thread_id,
        user_message=Message(
            id=f"{thread_id}-user",
            role="user",
            content=user_content,
            session_id=session.id,
        ),
        assistant_message=Message(
            id=f"{thread_id}-assistant",
            role="assistant",
            content="",
            session_id=session.id,
        ),
    )
    return replace(session, threads=(*session.threads, thread))


def apply_token_update(session: Session, cumulative_content: str) -> Session:
    """Set the assistant content of the last thread.

    `cumulative_content` is the full reply so far, not a delta.
    """
    thread = session.last_thread
    if thread is None:
        return session

    assistant = thread.assistant_message
    if assistant is None:
        assistant = Message(
            id=f"{thread.id}-assistant",
            role="assistant",
            content=cumulative_content,
            session_id=session.id,
        )
    else:
        assistant = replace(assistant, content=cumulative_content)
    return _replace_last_thread(session, replace(thread, assistant_message=assistant))


def apply_extras_update(session: Session, kind: ExtrasKind, payload: Iterable[Any]) -> Session:
    """Replace one extras array (sources, materials or suggestions) of the last thread."""
    thread = session.last_thread
    if thread is None:
        return session

    if kind == "sources":
        updated = replace(thread, sources=tuple(_as_source(item) for item in payload))
    elif kind == "materials":
        updated = replace(thread, materials=tuple(_as_material(item) for item in payload))
    elif kind == "suggestions":
        updated = replace(thread, suggestions=tuple(str(item) for item in payload))
    else:
        return session
    return _replace_last_thread(session, updated)


def reconcile_with_authoritative(session: Session, loaded: Session) -> Session:
    """Replace the client view with the durable one loaded from the server.

    The transient streaming flag belongs to the client and is carried over.
    A loaded session with a different id is not applied.
    """
    if loaded.id != session.id:
        return session
    return replace(loaded, is_streaming=session.is_streaming)


def set_streaming(session: Session, flag: bool) -> Session:
    if session.is_streaming == flag:
        return session
    return replace(session, is_streaming=flag)


def _replace_last_thread(session: Session, thread: Thread) -> Session:
    return replace(session, threads=(*session.threads[:-1], thread))


def _as_source(item: Any) -> Source:
    return item if isinstance(item, Source) else Source.model_validate(item)


def _as_material(item: Any) -> Material:
    return item if isinstance(item, Material) else Material.model_validate(item)
