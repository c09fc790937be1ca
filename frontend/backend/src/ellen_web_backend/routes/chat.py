"""Chat streaming routes."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException

from ellen_web_backend.dependencies import (
    get_completion_provider,
    get_deduplicator,
    get_storage,
)
from ellen_web_backend.models.chat import ChatRequest, SessionDetailResponse
from ellen_web_backend.services.chat_stream import (
    MEDIA_TYPES,
    ReleasingStreamingResponse,
    stream_chat_events,
)
from ellen_web_backend.services.completion import CompletionProvider
from ellen_web_backend.services.dedupe import (
    DuplicateRequestError,
    RequestDeduplicator,
    RequestInProgressError,
    request_key,
)
from ellen_web_backend.services.session_view import build_session_detail
from ellen_web_backend.settings import ServerSettings, get_settings
from ellen_web_backend.storage import MessageRecord, Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

# Module-level Depends instances to satisfy B008 linter rule
_storage_dep = Depends(get_storage)
_provider_dep = Depends(get_completion_provider)
_dedupe_dep = Depends(get_deduplicator)
_settings_dep = Depends(get_settings)

TITLE_LENGTH = 50


@router.post("/chat")
def run_chat(
    payload: ChatRequest,
    storage: Storage = _storage_dep,
    provider: CompletionProvider = _provider_dep,
    deduplicator: RequestDeduplicator = _dedupe_dep,
    settings: ServerSettings = _settings_dep,
) -> ReleasingStreamingResponse:
    """Stream the answer to a user message and persist both turns."""
    key = request_key(payload.session_id, payload.message)
    try:
        deduplicator.acquire(key)
    except DuplicateRequestError as exc:
        raise HTTPException(status_code=429, detail=str(exc)) from exc
    except RequestInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    try:
        session_id = payload.session_id or str(uuid4())
        storage.create_session(
            session_id,
            title=payload.message[:TITLE_LENGTH],
            project_id=payload.project_id,
            metadata={"created_by": "chat_api"},
        )
        storage.append_message(
            MessageRecord(
                message_id=str(uuid4()),
                session_id=session_id,
                role="user",
                content=payload.message,
                created_at=datetime.now(UTC).isoformat(),
            )
        )
    except Exception:
        deduplicator.release(key)
        raise

    logger.info("Streaming answer for session %s", session_id)
    stream = stream_chat_events(
        storage=storage,
        provider=provider,
        session_id=session_id,
        message=payload.message,
        stream_format=settings.stream_format,
        suggestion_limit=settings.suggestion_limit,
    )
    return ReleasingStreamingResponse(
        stream,
        on_close=lambda: deduplicator.release(key),
        media_type=MEDIA_TYPES[settings.stream_format],
        headers={"X-Session-Id": session_id, "Cache-Control": "no-cache"},
    )


@router.get("/chat/{session_id}", response_model=SessionDetailResponse)
def get_chat_session(session_id: str, storage: Storage = _storage_dep) -> SessionDetailResponse:
    """Return the authoritative thread view of a session."""
    record = storage.fetch_session(session_id)
    if not record:
        raise HTTPException(status_code=404, detail="Session not found")
    return build_session_detail(record, storage.list_messages(session_id))
