"""Authoritative session views built from stored messages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ellen_chat.models import Message, Thread, threads_from_messages

from ellen_web_backend.models.chat import MessageView, SessionDetailResponse, ThreadView
from ellen_web_backend.models.sessions import SessionView

if TYPE_CHECKING:
    from ellen_web_backend.storage import MessageRecord, SessionRecord


def session_view(record: SessionRecord) -> SessionView:
    return SessionView(
        id=record.session_id,
        project_id=record.project_id,
        title=record.title,
        metadata=record.metadata,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def message_view(record: MessageRecord) -> MessageView:
    return MessageView(
        id=record.message_id,
        role=record.role,
        content=record.content,
        session_id=record.session_id,
        created_at=record.created_at,
        sources=record.sources,
        related_materials=record.related_materials,
        suggested_questions=record.suggested_questions,
    )


def _message_payload(message: Message) -> MessageView:
    return MessageView(
        id=message.id,
        role=message.role,
        content=message.content,
        session_id=message.session_id,
        created_at=message.created_at,
    )


def thread_view(thread: Thread, session_id: str) -> ThreadView:
    return ThreadView(
        thread_id=thread.id,
        session_id=session_id,
        user_message=_message_payload(thread.user_message),
        assistant_message=(
            _message_payload(thread.assistant_message) if thread.assistant_message else None
        ),
        sources=[source.model_dump(exclude_none=True) for source in thread.sources],
        related_materials=[
            material.model_dump(exclude_none=True) for material in thread.materials
        ],
        suggested_questions=list(thread.suggestions),
        created_at=thread.created_at,
    )


def build_session_detail(
    record: SessionRecord, messages: list[MessageRecord]
) -> SessionDetailResponse:
    """Group stored messages into threads keyed by durable user message ids."""
    rows: list[dict[str, Any]] = [message_view(message).model_dump() for message in messages]
    threads = threads_from_messages(record.session_id, rows)
    header = session_view(record)
    return SessionDetailResponse(
        **header.model_dump(),
        threads=[thread_view(thread, record.session_id) for thread in threads],
        messages=[message_view(message) for message in messages],
    )
