"""API models for the chat backend."""

from ellen_web_backend.models.base import ApiModel
from ellen_web_backend.models.chat import (
    ChatRequest,
    MessageView,
    SessionDetailResponse,
    ThreadView,
)
from ellen_web_backend.models.sessions import (
    SessionCreateRequest,
    SessionListResponse,
    SessionView,
)

__all__ = [
    "ApiModel",
    "ChatRequest",
    "MessageView",
    "SessionCreateRequest",
    "SessionDetailResponse",
    "SessionListResponse",
    "SessionView",
    "ThreadView",
]
