"""Typed stream events for chat responses.

Each decoded line is a JSON object `{"type": ..., "content": ...}`. The `type`
field is validated first and selects the model that then validates `content`,
so a payload is only trusted after its tag is known.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ellen_chat.errors import MalformedLineError, MalformedReason
from ellen_chat.models import Material, Source  # noqa: TC001 (Pydantic needs runtime access)

ExtrasKind = Literal["sources", "materials", "suggestions"]

EVENT_TYPES: frozenset[str] = frozenset(
    {"token", "sources", "materials", "suggestions", "error"}
)


class _EventBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class TokenEvent(_EventBase):
    """A fragment of assistant text to append."""

    type: Literal["token"]
    content: str


class SourcesEvent(_EventBase):
    """Replacement list of sources for the open thread."""

    type: Literal["sources"]
    content: list[Source]


class MaterialsEvent(_EventBase):
    """Replacement list of related materials for the open thread."""

    type: Literal["materials"]
    content: list[Material]


class SuggestionsEvent(_EventBase):
    """Replacement list of follow-up questions for the open thread."""

    type: Literal["suggestions"]
    content: list[str]


class ErrorEvent(_EventBase):
    """Error reported deliberately by the server."""

    type: Literal["error"]
    content: str | dict[str, Any] = ""

    @property
    def message(self) -> str:
        """Return a human-readable error message."""
        if isinstance(self.content, dict):
            return str(self.content.get("message") or self.content)
        return self.content or "Unknown upstream error"


StreamEvent = Annotated[
    TokenEvent | SourcesEvent | MaterialsEvent | SuggestionsEvent | ErrorEvent,
    Field(discriminator="type"),
]

_STREAM_EVENT_ADAPTER: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)

_TAG_ERRORS = {"union_tag_invalid", "union_tag_not_found"}
_NOT_AN_OBJECT_ERRORS = {"json_invalid", "model_attributes_type", "dict_type"}


def parse_stream_event(line: str) -> StreamEvent:
    """Parse one payload line into a StreamEvent.

    Raises:
        MalformedLineError: the line is not JSON, has an unknown `type`, or its
            `content` does not match the declared type.
    """
    try:
        return _STREAM_EVENT_ADAPTER.validate_json(line)
    except ValidationError as exc:
        raise MalformedLineError(_classify(exc), line, _first_error(exc)) from exc


def _classify(exc: ValidationError) -> MalformedReason:
    error_types = {error["type"] for error in exc.errors()}
    root_types = {error["type"] for error in exc.errors() if not error.get("loc")}
    if root_types & _NOT_AN_OBJECT_ERRORS:
        return "invalid_json"
    if error_types & _TAG_ERRORS:
        return "unknown_type"
    return "invalid_content"


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return ""
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', '')}" if location else str(first.get("msg", ""))
