"""Optimistic-update controller and request lifecycle for a chat session.

`ChatSessionController` is the single writer of the current Session. It owns
the request state machine::

    Idle -> Sending -> Streaming -> Reconciling -> Idle

Only the most recent `send_message` call may change the session. Starting a new
request, or calling `abort()`, cancels the one in flight; its remaining events
are dropped by the dispatcher and none of its await points resume mutation.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import aclosing
from dataclasses import dataclass
from enum import StrEnum
from itertools import count
from typing import TYPE_CHECKING

from ellen_chat.decoder import iter_payloads
from ellen_chat.dispatcher import EventDispatcher, StreamHandlers
from ellen_chat.errors import (
    ChatError,
    DecodeError,
    ReconciliationError,
    TransportError,
    UpstreamError,
)
from ellen_chat.logging_utils import bind_session_id
from ellen_chat.store import (
    append_optimistic_thread,
    apply_extras_update,
    apply_token_update,
    reconcile_with_authoritative,
    set_streaming,
)

if TYPE_CHECKING:
    from ellen_chat.models import Material, Session, Source
    from ellen_chat.persistence import SessionStore
    from ellen_chat.transport import ChatTransport

logger = logging.getLogger(__name__)

SESSION_TITLE_LENGTH = 50

SessionListener = Callable[["Session"], None]


class RequestState(StrEnum):
    """Lifecycle state of the controller's current request."""

    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    RECONCILING = "reconciling"


@dataclass
class _ActiveRequest:
    token: int
    task: asyncio.Task | None
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True
        if self.task is not None and self.task is not asyncio.current_task():
            self.task.cancel()


class ChatSessionController:
    """Drives one chat session through optimistic send, stream and reconcile."""

    def __init__(
        self,
        transport: ChatTransport,
        store: SessionStore,
        *,
        project_id: str | None = None,
        session: Session | None = None,
    ) -> None:
        self._transport = transport
        self._store = store
        self._project_id = project_id
        self._session = session
        self._state = RequestState.IDLE
        self._error: ChatError | None = None
        self._last_error: ChatError | None = None
        self._listeners: list[SessionListener] = []
        self._active: _ActiveRequest | None = None
        self._pending_creation: asyncio.Future[Session] | None = None
        self._tokens = count(1)

    @property
    def session(self) -> Session | None:
        """Return the last committed session snapshot."""
        return self._session

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def error(self) -> ChatError | None:
        """Return the error of the current or most recent request, if any."""
        return self._error

    @property
    def last_error(self) -> ChatError | None:
        """Return the most recent error, kept across later successful requests."""
        return self._last_error

    @property
    def is_busy(self) -> bool:
        return self._state is not RequestState.IDLE

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener for committed session snapshots.

        Returns a callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def is_active_request(self, token: int) -> bool:
        """Return True while `token` identifies the request allowed to mutate state."""
        active = self._active
        return active is not None and active.token == token and not active.cancelled

    def clear_error(self) -> None:
        self._error = None

    async def send_message(self, content: str) -> Session | None:
        """Send a user message, creating the session first if needed.

        Any request still in flight is superseded. Errors are reported through
        `error`; cancellation is not an error. Returns the committed session.
        """
        if not content.strip():
            return self._session

        if self._active is not None:
            logger.info("Superseding in-flight request %s", self._active.token)
            self._cancel_active()

        request = _ActiveRequest(token=next(self._tokens), task=asyncio.current_task())
        self._active = request
        self._error = None
        self._set_state(RequestState.SENDING)
        try:
            await self._run(request, content)
        except asyncio.CancelledError:
            if not request.cancelled:
                raise
            task = asyncio.current_task()
            if task is not None:
                task.uncancel()
            logger.info("Request %s cancelled", request.token)
        finally:
            if self._active is request:
                self._finish()
        return self._session

    async def load(self, session_id: str) -> Session | None:
        """Load a session from the store, replacing the current one.

        Any request in flight is aborted. A later `send_message` or `load`
        supersedes this one, and its result is then dropped.
        """
        self.abort()
        request = _ActiveRequest(token=next(self._tokens), task=None)
        self._active = request
        try:
            loaded = await self._store.fetch_session(session_id)
        except ChatError as exc:
            if not self.is_active_request(request.token):
                return self._session
            logger.warning("Failed to load session %s: %s", session_id, exc)
            self._set_error(exc)
            return None
        finally:
            if self._active is request:
                self._active = None
        if request.cancelled:
            logger.info("Dropping superseded load of session %s", session_id)
            return self._session
        self._error = None
        self._commit(loaded)
        return loaded

    def abort(self) -> None:
        """Cancel the in-flight request, if any."""
        if self._active is None:
            return
        logger.info("Aborting request %s", self._active.token)
        self._cancel_active()
        self._set_state(RequestState.IDLE)

    async def _run(self, request: _ActiveRequest, content: str) -> None:
        session = self._session
        if session is None:
            session = await self._create_session(request, content)
            if session is None:
                return

        with bind_session_id(session.id):
            optimistic = append_optimistic_thread(session, content)
            self._commit(set_streaming(optimistic, True))

            if not await self._stream(request, session.id, content):
                return
            if not self.is_active_request(request.token):
                return

            self._set_state(RequestState.RECONCILING)
            await self._reconcile(request, session.id)

    async def _create_session(self, request: _ActiveRequest, content: str) -> Session | None:
        # A creation started by a superseded send is reused, not repeated.
        creation = self._pending_creation
        if creation is None:
            creation = asyncio.ensure_future(
                self._store.create_session(
                    content[:SESSION_TITLE_LENGTH],
                    project_id=self._project_id,
                    initial_query=content,
                )
            )
            self._pending_creation = creation
        try:
            session = await asyncio.shield(creation)
        except ChatError as exc:
            if self._pending_creation is creation:
                self._pending_creation = None
            logger.warning("Session creation failed: %s", exc)
            self._fail(request, exc)
            return None
        if not self.is_active_request(request.token):
            return None
        self._pending_creation = None
        self._commit(session)
        return session

    async def _stream(self, request: _ActiveRequest, session_id: str, content: str) -> bool:
        dispatcher = EventDispatcher(
            self._handlers(),
            is_active=lambda: self.is_active_request(request.token),
        )
        try:
            async with self._transport.stream_chat(
                session_id, content, project_id=self._project_id
            ) as chunks:
                if not self.is_active_request(request.token):
                    return False
                self._set_state(RequestState.STREAMING)
                async with aclosing(iter_payloads(chunks)) as payloads:
                    async for payload in payloads:
                        dispatcher.dispatch_line(payload)
                        if not self.is_active_request(request.token):
                            return False
        except DecodeError as exc:
            logger.warning("Stream interrupted after %d chars: %s", len(dispatcher.content), exc)
            self._fail(request, exc)
            return False
        except TransportError as exc:
            logger.warning("Chat request failed: %s", exc)
            self._fail(request, exc)
            return False

        logger.info(
            "Stream finished (%d chars, %d skipped lines, failed=%s)",
            len(dispatcher.content),
            len(dispatcher.skipped),
            dispatcher.failed,
        )
        return True

    async def _reconcile(self, request: _ActiveRequest, session_id: str) -> None:
        try:
            loaded = await self._store.fetch_session(session_id)
        except ChatError as exc:
            if not self.is_active_request(request.token):
                return
            logger.warning("Reconciliation failed: %s", exc)
            error = ReconciliationError(f"Failed to reload session {session_id}: {exc}")
            error.__cause__ = exc
            self._set_error(error)
            return
        if not self.is_active_request(request.token):
            return
        self._commit(reconcile_with_authoritative(self._require_session(), loaded))

    def _handlers(self) -> StreamHandlers:
        def on_token(content: str) -> None:
            self._commit(apply_token_update(self._require_session(), content))

        def on_sources(sources: list[Source]) -> None:
            self._commit(apply_extras_update(self._require_session(), "sources", sources))

        def on_materials(materials: list[Material]) -> None:
            self._commit(apply_extras_update(self._require_session(), "materials", materials))

        def on_suggestions(suggestions: list[str]) -> None:
            self._commit(apply_extras_update(self._require_session(), "suggestions", suggestions))

        def on_error(error: UpstreamError) -> None:
            self._set_error(error)

        return StreamHandlers(
            on_token=on_token,
            on_sources=on_sources,
            on_materials=on_materials,
            on_suggestions=on_suggestions,
            on_error=on_error,
        )

    def _cancel_active(self) -> None:
        active = self._active
        if active is None:
            return
        self._active = None
        if self._session is not None:
            self._commit(set_streaming(self._session, False))
        active.cancel()

    def _finish(self) -> None:
        self._active = None
        if self._session is not None:
            self._commit(set_streaming(self._session, False))
        self._set_state(RequestState.IDLE)

    def _require_session(self) -> Session:
        if self._session is None:
            msg = "No session to update"
            raise RuntimeError(msg)
        return self._session

    def _fail(self, request: _ActiveRequest, error: ChatError) -> None:
        if self.is_active_request(request.token):
            self._set_error(error)

    def _set_error(self, error: ChatError) -> None:
        self._error = error
        self._last_error = error

    def _set_state(self, state: RequestState) -> None:
        if state is not self._state:
            logger.debug("Request state %s -> %s", self._state, state)
            self._state = state

    def _commit(self, session: Session) -> None:
        if session is self._session:
            return
        self._session = session
        for listener in list(self._listeners):
            listener(session)
