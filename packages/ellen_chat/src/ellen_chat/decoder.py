"""Line decoding for streamed chat responses.

Turns an HTTP response body, delivered as arbitrarily split byte chunks, into
complete text lines. Both wire variants produced by chat backends are
line-based: raw NDJSON (one JSON object per line) and SSE (`data: <json>`
frames separated by blank lines, terminated by `data: [DONE]`).
"""

from __future__ import annotations

import codecs
from contextlib import aclosing
from typing import TYPE_CHECKING

from ellen_chat.errors import DecodeError

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator

DONE_SENTINEL = "[DONE]"

_SSE_DATA_PREFIX = "data:"
_SSE_IGNORED_FIELDS = ("event:", "id:", "retry:")


class LineDecoder:
    """Incremental bytes-to-lines decoder.

    Keeps a trailing partial line buffered until a later chunk completes it,
    and reassembles multi-byte UTF-8 sequences split across chunk boundaries.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._flushed = False

    def decode(self, chunk: bytes) -> list[str]:
        """Feed a chunk and return the lines it completed, in order."""
        if not chunk:
            return []
        self._buffer += self._decoder.decode(chunk)
        *complete, self._buffer = self._buffer.split("\n")
        return _clean(complete)

    def flush(self) -> list[str]:
        """Return the unterminated trailing line, if any.

        Only the first call after the stream ends can return content.
        """
        if self._flushed:
            return []
        self._flushed = True
        remainder = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return _clean(remainder.split("\n"))


def _clean(lines: list[str]) -> list[str]:
    cleaned: list[str] = []
    for line in lines:
        stripped = line.strip()
        if stripped:
            cleaned.append(stripped)
    return cleaned


def unframe(line: str) -> str | None:
    """Extract the payload of one line, or None for SSE bookkeeping lines.

    NDJSON lines are returned unchanged; `data:` lines lose their prefix.
    """
    if line.startswith(_SSE_DATA_PREFIX):
        return line.removeprefix(_SSE_DATA_PREFIX).strip()
    if line.startswith(":") or line.startswith(_SSE_IGNORED_FIELDS):
        return None
    return line


async def iter_lines(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Yield complete lines from a byte-chunk source.

    Each call uses a fresh decoder. A failure of the underlying read is
    re-raised as DecodeError; the final partial line is yielded once the
    source is exhausted.
    """
    decoder = LineDecoder()
    iterator = chunks.__aiter__()
    while True:
        try:
            chunk = await iterator.__anext__()
        except StopAsyncIteration:
            break
        except Exception as exc:
            msg = f"Stream read failed: {exc}"
            raise DecodeError(msg) from exc
        for line in decoder.decode(chunk):
            yield line
    for line in decoder.flush():
        yield line


async def iter_payloads(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Yield event payloads, stopping at the SSE `[DONE]` sentinel."""
    async with aclosing(iter_lines(chunks)) as lines:
        async for line in lines:
            payload = unframe(line)
            if not payload:
                continue
            if payload == DONE_SENTINEL:
                return
            yield payload
