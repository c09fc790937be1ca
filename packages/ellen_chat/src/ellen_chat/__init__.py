from ellen_chat.decoder import DONE_SENTINEL, LineDecoder, iter_lines, iter_payloads, unframe
from ellen_chat.dispatcher import EventDispatcher, StreamHandlers
from ellen_chat.errors import (
    ChatError,
    DecodeError,
    MalformedLineError,
    ReconciliationError,
    SessionNotFoundError,
    SessionStoreError,
    TransportError,
    UpstreamError,
)
from ellen_chat.events import (
    ErrorEvent,
    MaterialsEvent,
    SourcesEvent,
    StreamEvent,
    SuggestionsEvent,
    TokenEvent,
    parse_stream_event,
)
from ellen_chat.factory import create_chat_controller, open_chat_controller
from ellen_chat.lifecycle import ChatSessionController, RequestState
from ellen_chat.logging_utils import SessionContextFilter, install_session_log_filter
from ellen_chat.models import Material, Message, Session, Source, Thread, threads_from_messages
from ellen_chat.persistence import HttpSessionStore, SessionStore
from ellen_chat.settings import ClientSettings, load_settings
from ellen_chat.store import (
    append_optimistic_thread,
    apply_extras_update,
    apply_token_update,
    new_temporary_id,
    reconcile_with_authoritative,
    set_streaming,
)
from ellen_chat.transport import ChatTransport, HttpChatTransport

__all__ = [
    "DONE_SENTINEL",
    "ChatError",
    "ChatSessionController",
    "ChatTransport",
    "ClientSettings",
    "DecodeError",
    "ErrorEvent",
    "EventDispatcher",
    "HttpChatTransport",
    "HttpSessionStore",
    "LineDecoder",
    "MalformedLineError",
    "Material",
    "MaterialsEvent",
    "Message",
    "ReconciliationError",
    "RequestState",
    "Session",
    "SessionContextFilter",
    "SessionNotFoundError",
    "SessionStore",
    "SessionStoreError",
    "Source",
    "SourcesEvent",
    "StreamEvent",
    "StreamHandlers",
    "SuggestionsEvent",
    "Thread",
    "TokenEvent",
    "TransportError",
    "UpstreamError",
    "append_optimistic_thread",
    "apply_extras_update",
    "apply_token_update",
    "create_chat_controller",
    "install_session_log_filter",
    "iter_lines",
    "iter_payloads",
    "load_settings",
    "new_temporary_id",
    "open_chat_controller",
    "parse_stream_event",
    "reconcile_with_authoritative",
    "set_streaming",
    "threads_from_messages",
    "unframe",
]
