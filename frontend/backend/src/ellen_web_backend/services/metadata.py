"""Regex extraction of answer metadata from markdown responses.

Used when the completion provider returns no structured metadata. Answers are
expected to follow the prompt's section layout::

    ### Sources
    1. [Title](https://url) - optional snippet

    #### Extracted Material Name
    - **Lithium**

    ### Follow-up Questions
    1. First question?
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

_SOURCES_SECTION = re.compile(r"###(?:\*\*)? Sources(?:\*\*)?\s*\n([\s\S]*?)(?:\n---|$|###)")
_SOURCE_ITEM = re.compile(r"\d+\.\s*\[([^\]]+)\]\(([^)]+)\)(?:\s*-\s*(.*))?")
_MATERIALS_SECTION = re.compile(
    r"####(?:\*\*)? Extracted Material Name(?:\*\*)?\s*\n([\s\S]*?)(?:\n---|$|###)"
)
_MATERIAL_ITEM = re.compile(r"-\s*\*\*(.*?)\*\*")
_SUGGESTIONS_SECTION = re.compile(r"###(?:\*\*)? Follow-up Questions(?:\*\*)?\s*\n([\s\S]*)")
_SUGGESTION_ITEM = re.compile(r"^\d+\.\s*(.*)$", re.MULTILINE)


@dataclass(frozen=True)
class AnswerMetadata:
    """Structured extras attached to an assistant answer."""

    sources: list[dict[str, Any]] = field(default_factory=list)
    related_materials: list[str] = field(default_factory=list)
    suggested_questions: list[str] = field(default_factory=list)


def extract_sources(text: str) -> list[dict[str, Any]]:
    """Extract numbered markdown links from the Sources section."""
    section = _SOURCES_SECTION.search(text)
    if not section or not section.group(1):
        return []
    sources: list[dict[str, Any]] = []
    for match in _SOURCE_ITEM.finditer(section.group(1)):
        source: dict[str, Any] = {"title": match.group(1).strip(), "url": match.group(2).strip()}
        if match.group(3):
            source["snippet"] = match.group(3).strip()
        sources.append(source)
    return sources


def extract_related_materials(text: str) -> list[str]:
    """Extract bold bullet names from the Extracted Material Name section."""
    section = _MATERIALS_SECTION.search(text)
    if not section or not section.group(1):
        return []
    return [match.group(1).strip() for match in _MATERIAL_ITEM.finditer(section.group(1))]


def extract_suggested_questions(text: str, limit: int = 3) -> list[str]:
    """Extract numbered follow-up questions, keeping at most `limit`."""
    section = _SUGGESTIONS_SECTION.search(text)
    if not section or not section.group(1):
        return []
    suggestions = [match.group(1).strip() for match in _SUGGESTION_ITEM.finditer(section.group(1))]
    return suggestions[:limit]


def extract_metadata(text: str, *, suggestion_limit: int = 3) -> AnswerMetadata:
    """Run all fallback extractors over a complete answer."""
    return AnswerMetadata(
        sources=extract_sources(text),
        related_materials=extract_related_materials(text),
        suggested_questions=extract_suggested_questions(text, suggestion_limit),
    )
