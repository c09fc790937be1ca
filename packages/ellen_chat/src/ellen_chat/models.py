"""Session, thread and message models for the chat streaming core.

Domain values are immutable: dataclasses are frozen and sequences are tuples,
so every update produces a new object and observers can rely on identity.
Wire records (sources, materials) are frozen pydantic models so that the
stream parser can validate them before trusting their shape.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, model_validator

Role = Literal["user", "assistant"]

TEMP_ID_PREFIX = "temp-"


class Source(BaseModel):
    """Source reference attached to an assistant answer."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str
    url: str = ""
    snippet: str | None = None
    id: str | None = None


class Material(BaseModel):
    """Materials-intelligence record keyed by its name.

    Only the commonly rendered fields are declared; any other column sent by the
    server is kept as an extra attribute.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    material: str
    id: str | None = None
    symbol: str | None = None
    short_summary: str | None = None
    summary: str | None = None
    url: str | None = None
    material_card_color: str | None = None
    supply_score: float | None = None
    ownership_score: float | None = None
    processing_score: float | None = None
    chokepoints_score: float | None = None
    demand_outlook_score: float | None = None
    supply_outlook_score: float | None = None
    price_trends_score: float | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_name(cls, data: Any) -> Any:
        # Metadata extraction may only know the material name.
        if isinstance(data, str):
            return {"material": data}
        return data


@dataclass(frozen=True)
class Message:
    """A single user or assistant message."""

    id: str
    role: Role
    content: str
    session_id: str | None = None
    created_at: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, session_id: str | None = None) -> Message:
        """Build a message from a JSON payload."""
        role = data.get("role")
        if role not in ("user", "assistant"):
            msg = f"Unsupported message role: {role!r}"
            raise ValueError(msg)
        return cls(
            id=str(data.get("id") or ""),
            role=role,
            content=str(data.get("content") or ""),
            session_id=data.get("session_id") or session_id,
            created_at=data.get("created_at"),
        )


@dataclass(frozen=True)
class Thread:
    """One user turn and the assistant turn answering it."""

    id: str
    user_message: Message
    assistant_message: Message | None
    sources: tuple[Source, ...] = ()
    materials: tuple[Material, ...] = ()
    suggestions: tuple[str, ...] = ()
    created_at: str | None = None

    @property
    def is_provisional(self) -> bool:
        """Return True while the thread still carries a client-generated id."""
        return self.id.startswith(TEMP_ID_PREFIX)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, session_id: str | None = None) -> Thread:
        """Build a thread from a thread-view payload.

        Accepts nested `user_message`/`assistant_message` objects as well as the
        flattened `*_message_id` / `*_message_content` columns of a joined view.
        """
        thread_id = str(data.get("thread_id") or data.get("id") or "")
        session_id = data.get("session_id") or session_id

        user_raw = data.get("user_message")
        if not isinstance(user_raw, Mapping):
            user_raw = {
                "id": data.get("user_message_id"),
                "role": "user",
                "content": data.get("user_message_content"),
            }
        user_message = Message.from_dict(user_raw, session_id=session_id)

        assistant_raw = data.get("assistant_message")
        if not isinstance(assistant_raw, Mapping) and data.get("assistant_message_id"):
            assistant_raw = {
                "id": data.get("assistant_message_id"),
                "role": "assistant",
                "content": data.get("assistant_message_content"),
            }
        assistant_message = (
            Message.from_dict(assistant_raw, session_id=session_id)
            if isinstance(assistant_raw, Mapping)
            else None
        )

        return cls(
            id=thread_id,
            user_message=user_message,
            assistant_message=assistant_message,
            sources=_parse_sources(data.get("sources")),
            materials=_parse_materials(data.get("related_materials", data.get("materials"))),
            suggestions=_parse_suggestions(
                data.get("suggested_questions", data.get("suggestions"))
            ),
            created_at=data.get("created_at"),
        )


@dataclass(frozen=True)
class Session:
    """An ordered conversation of threads.

    Only the last thread is open for stream updates.
    """

    id: str
    project_id: str | None = None
    title: str | None = None
    threads: tuple[Thread, ...] = ()
    is_streaming: bool = False
    metadata: Mapping[str, Any] = field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def last_thread(self) -> Thread | None:
        """Return the open thread, if any."""
        return self.threads[-1] if self.threads else None

    @property
    def initial_query(self) -> str | None:
        """Return the pending initial query stored in the session metadata."""
        value = self.metadata.get("initial_query")
        return str(value) if value else None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Session:
        """Build a session from an authoritative session payload.

        A `threads` array is used when present; otherwise a flat `messages`
        history is grouped into threads.
        """
        session_id = str(data.get("id") or "")
        raw_threads = data.get("threads")
        if isinstance(raw_threads, list):
            threads = tuple(Thread.from_dict(item, session_id=session_id) for item in raw_threads)
        else:
            threads = threads_from_messages(session_id, data.get("messages") or [])
        metadata = data.get("metadata")
        return cls(
            id=session_id,
            project_id=data.get("project_id"),
            title=data.get("title"),
            threads=threads,
            metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


def threads_from_messages(
    session_id: str, messages: Iterable[Mapping[str, Any]]
) -> tuple[Thread, ...]:
    """Group a chronological flat message history into threads.

    Rules:
    1. Messages keep their chronological order.
    2. Every assistant message up to the next user message belongs to the
       preceding user message; multiple parts are merged into one reply.
    3. A user message without a reply yields `assistant_message=None`.
    4. Messages before the first user message are skipped.
    """
    rows = [row for row in messages if row.get("role") in ("user", "assistant")]
    threads: list[Thread] = []

    index = 0
    while index < len(rows):
        row = rows[index]
        index += 1
        if row.get("role") != "user":
            continue

        user_message = Message.from_dict(row, session_id=session_id)
        replies: list[Mapping[str, Any]] = []
        while index < len(rows) and rows[index].get("role") == "assistant":
            replies.append(rows[index])
            index += 1

        assistant_message: Message | None = None
        sources: list[Source] = []
        materials: list[Material] = []
        suggestions: list[str] = []
        if replies:
            first = Message.from_dict(replies[0], session_id=session_id)
            content = "".join(str(reply.get("content") or "") for reply in replies)
            assistant_message = Message(
                id=first.id,
                role="assistant",
                content=content,
                session_id=first.session_id,
                created_at=first.created_at,
            )
            for reply in replies:
                sources.extend(_parse_sources(reply.get("sources")))
                materials.extend(_parse_materials(reply.get("related_materials")))
                suggestions.extend(_parse_suggestions(reply.get("suggested_questions")))

        threads.append(
            Thread(
                id=user_message.id,
                user_message=user_message,
                assistant_message=assistant_message,
                sources=tuple(sources),
                materials=tuple(materials),
                suggestions=tuple(suggestions),
                created_at=user_message.created_at,
            )
        )

    return tuple(threads)


def _parse_sources(raw: Any) -> tuple[Source, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(Source.model_validate(item) for item in raw)


def _parse_materials(raw: Any) -> tuple[Material, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(Material.model_validate(item) for item in raw)


def _parse_suggestions(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(str(item) for item in raw)
