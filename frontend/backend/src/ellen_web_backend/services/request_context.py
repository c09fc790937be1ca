"""Request context utilities for logging."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

from ellen_chat.logging_utils import get_request_id, set_request_id

if TYPE_CHECKING:
    from collections.abc import Callable

    from fastapi import Request, Response

__all__ = ["clear_request_id", "get_request_id", "request_id_middleware", "set_request_id"]


def clear_request_id() -> None:
    """Clear the current request id."""
    set_request_id(None)


async def request_id_middleware(request: Request, call_next: Callable) -> Response:
    """FastAPI middleware to inject request id into context and response headers."""
    request_id = request.headers.get("X-Request-Id") or str(uuid4())
    set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        clear_request_id()
    response.headers["X-Request-Id"] = request_id
    return response
