"""Session API models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field

from ellen_web_backend.models.base import ApiModel


class SessionCreateRequest(ApiModel):
    """Request payload to create a chat session."""

    id: str | None = None
    title: str | None = Field(default=None, max_length=200)
    project_id: str | None = Field(
        default=None, validation_alias=AliasChoices("project_id", "projectId")
    )
    metadata: dict[str, Any] = Field(default_factory=dict)


class SessionView(ApiModel):
    """Session header returned by create and list endpoints."""

    id: str
    project_id: str | None = None
    title: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: str
    updated_at: str


class SessionListResponse(ApiModel):
    """Session list response payload."""

    sessions: list[SessionView]
