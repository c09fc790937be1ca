"""Chat API models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field

from ellen_web_backend.models.base import ApiModel


class ChatRequest(ApiModel):
    """Request payload for a streamed chat completion.

    The message may be sent as `message` or, as older clients do, `query`.
    """

    session_id: str | None = Field(
        default=None, validation_alias=AliasChoices("session_id", "sessionId")
    )
    message: str = Field(min_length=1, validation_alias=AliasChoices("message", "query"))
    project_id: str | None = Field(
        default=None, validation_alias=AliasChoices("project_id", "projectId")
    )


class MessageView(ApiModel):
    """Persisted message payload."""

    id: str
    role: str
    content: str
    session_id: str | None = None
    created_at: str | None = None
    sources: list[dict[str, Any]] = Field(default_factory=list)
    related_materials: list[dict[str, Any]] = Field(default_factory=list)
    suggested_questions: list[str] = Field(default_factory=list)


class ThreadView(ApiModel):
    """One user turn with its assistant reply and extras."""

    thread_id: str
    session_id: str
    user_message: MessageView
    assistant_message: MessageView | None = None
    sources: list[dict[str, Any]] = Field(default_factory=list)
    related_materials: list[dict[str, Any]] = Field(default_factory=list)
    suggested_questions: list[str] = Field(default_factory=list)
    created_at: str | None = None


class SessionDetailResponse(ApiModel):
    """Authoritative session view used for reconciliation."""

    id: str
    project_id: str | None = None
    title: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: str
    updated_at: str
    threads: list[ThreadView]
    messages: list[MessageView]
