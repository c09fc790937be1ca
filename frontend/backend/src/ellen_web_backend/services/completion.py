"""Completion providers for chat answers.

A provider turns the session history and the new query into a stream of text
deltas, optionally followed by structured metadata. The scripted provider is
deterministic and needs no model credentials.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from ellen_web_backend.services.metadata import AnswerMetadata
    from ellen_web_backend.storage import MessageRecord


class CompletionError(RuntimeError):
    """The completion provider failed while producing an answer."""


@dataclass(frozen=True)
class CompletionChunk:
    """One piece of provider output: a text delta or final metadata."""

    text: str = ""
    metadata: AnswerMetadata | None = None


class CompletionProvider(Protocol):
    """Produces a streamed answer for a query."""

    def stream(
        self, history: Sequence[MessageRecord], query: str
    ) -> AsyncIterator[CompletionChunk]: ...


def _default_reply(query: str, turn: int) -> str:
    return (
        f"Here is what I found about: {query}\n\n"
        f"This is answer number {turn} in this conversation.\n\n"
        "### Sources\n"
        "1. [USGS Mineral Commodity Summaries](https://pubs.usgs.gov/periodicals/mcs2024)"
        " - Annual supply statistics\n\n"
        "#### Extracted Material Name\n"
        "- **Lithium**\n\n"
        "### Follow-up Questions\n"
        "1. Which countries dominate processing?\n"
        "2. How volatile have prices been?\n"
        "3. What are the main substitutes?\n"
        "4. Who are the largest producers?\n"
    )


class ScriptedCompletionProvider:
    """Deterministic provider that streams a fixed or templated reply."""

    def __init__(
        self,
        reply: str | None = None,
        *,
        chunk_size: int = 16,
        metadata: AnswerMetadata | None = None,
        fail_after_chunks: int | None = None,
        delay: float = 0.0,
    ) -> None:
        """Initialize the provider.

        Args:
            reply: Fixed answer text. Defaults to a templated markdown answer.
            chunk_size: Number of characters per streamed delta.
            metadata: Structured metadata emitted after the text.
            fail_after_chunks: Raise CompletionError after this many deltas.
            delay: Seconds to sleep between deltas.
        """
        self._reply = reply
        self._chunk_size = max(1, chunk_size)
        self._metadata = metadata
        self._fail_after_chunks = fail_after_chunks
        self._delay = delay

    async def stream(
        self, history: Sequence[MessageRecord], query: str
    ) -> AsyncIterator[CompletionChunk]:
        """Yield the reply in fixed-size deltas."""
        turn = sum(1 for record in history if record.role == "user")
        text = self._reply if self._reply is not None else _default_reply(query, turn)
        for index, start in enumerate(range(0, len(text), self._chunk_size)):
            if self._fail_after_chunks is not None and index >= self._fail_after_chunks:
                msg = "Completion provider stopped responding"
                raise CompletionError(msg)
            await asyncio.sleep(self._delay)
            yield CompletionChunk(text=text[start : start + self._chunk_size])
        if self._metadata is not None:
            yield CompletionChunk(metadata=self._metadata)
