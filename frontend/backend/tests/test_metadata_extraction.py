"""Tests for markdown metadata extraction."""

from __future__ import annotations

from ellen_web_backend.services.metadata import (
    extract_metadata,
    extract_related_materials,
    extract_sources,
    extract_suggested_questions,
)

ANSWER = """Lithium supply is concentrated.

### Sources
1. [USGS Summary](https://usgs.gov/mcs) - Annual statistics
2. [IEA Outlook](https://iea.org/outlook)

#### Extracted Material Name
- **Lithium**
- **Cobalt**

### Follow-up Questions
1. Who refines it?
2. What are the substitutes?
3. How are prices trending?
4. Which mines are planned?
"""


def test_extract_sources_with_optional_snippet() -> None:
    assert extract_sources(ANSWER) == [
        {"title": "USGS Summary", "url": "https://usgs.gov/mcs", "snippet": "Annual statistics"},
        {"title": "IEA Outlook", "url": "https://iea.org/outlook"},
    ]


def test_extract_related_materials() -> None:
    assert extract_related_materials(ANSWER) == ["Lithium", "Cobalt"]


def test_extract_suggested_questions_respects_limit() -> None:
    assert extract_suggested_questions(ANSWER) == [
        "Who refines it?",
        "What are the substitutes?",
        "How are prices trending?",
    ]
    assert len(extract_suggested_questions(ANSWER, limit=10)) == 4


def test_extract_metadata_without_sections() -> None:
    metadata = extract_metadata("Just an answer.")
    assert metadata.sources == []
    assert metadata.related_materials == []
    assert metadata.suggested_questions == []
