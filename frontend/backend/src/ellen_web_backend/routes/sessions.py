"""Session management routes."""

from __future__ import annotations

from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException

from ellen_web_backend.dependencies import get_storage
from ellen_web_backend.models.sessions import (
    SessionCreateRequest,
    SessionListResponse,
    SessionView,
)
from ellen_web_backend.services.session_view import session_view
from ellen_web_backend.storage import Storage

router = APIRouter(prefix="/api", tags=["sessions"])

# Module-level Depends instance to satisfy B008 linter rule
_storage_dep = Depends(get_storage)

TITLE_LENGTH = 50


@router.get("/sessions", response_model=SessionListResponse)
def list_sessions(
    project_id: str | None = None, storage: Storage = _storage_dep
) -> SessionListResponse:
    """List sessions, most recently updated first."""
    return SessionListResponse(
        sessions=[session_view(record) for record in storage.list_sessions(project_id)]
    )


@router.post("/sessions", response_model=SessionView, status_code=201)
def create_session(payload: SessionCreateRequest, storage: Storage = _storage_dep) -> SessionView:
    """Create a new chat session."""
    session_id = payload.id or str(uuid4())
    if storage.fetch_session(session_id):
        raise HTTPException(status_code=409, detail="Session already exists")
    title = payload.title or payload.metadata.get("initial_query") or None
    record = storage.create_session(
        session_id,
        title=title[:TITLE_LENGTH] if title else None,
        project_id=payload.project_id,
        metadata=payload.metadata,
    )
    return session_view(record)


@router.get("/sessions/{session_id}", response_model=SessionView)
def get_session(session_id: str, storage: Storage = _storage_dep) -> SessionView:
    """Get a session header by ID."""
    record = storage.fetch_session(session_id)
    if not record:
        raise HTTPException(status_code=404, detail="Session not found")
    return session_view(record)


@router.delete("/sessions/{session_id}/initial-query", response_model=SessionView)
def clear_initial_query(session_id: str, storage: Storage = _storage_dep) -> SessionView:
    """Clear the pending initial query once the client has sent it."""
    record = storage.fetch_session(session_id)
    if not record:
        raise HTTPException(status_code=404, detail="Session not found")
    metadata = {key: value for key, value in record.metadata.items() if key != "initial_query"}
    storage.update_metadata(session_id, metadata)
    updated = storage.fetch_session(session_id)
    return session_view(updated or record)


@router.delete("/sessions/{session_id}")
def delete_session(session_id: str, storage: Storage = _storage_dep) -> dict[str, str]:
    """Delete a session and its messages."""
    storage.delete_session(session_id)
    return {"status": "ok"}
