from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class SessionRecord:
    """Serialized chat session stored in SQLite."""

    session_id: str
    project_id: str | None
    title: str | None
    metadata: dict[str, Any]
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class MessageRecord:
    """Serialized chat message stored in SQLite.

    Assistant messages carry the extras streamed alongside them.
    """

    message_id: str
    session_id: str
    role: str
    content: str
    created_at: str
    sources: list[dict[str, Any]] = field(default_factory=list)
    related_materials: list[dict[str, Any]] = field(default_factory=list)
    suggested_questions: list[str] = field(default_factory=list)


class Storage:
    """SQLite-backed storage for chat sessions, messages and materials."""

    def __init__(self, db_path: str | Path) -> None:
        """Initialize storage and ensure tables exist."""
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def list_sessions(self, project_id: str | None = None) -> list[SessionRecord]:
        """Return sessions ordered by most recent update."""
        query = """SELECT id, project_id, title, metadata, created_at, updated_at
                   FROM sessions"""
        params: tuple[Any, ...] = ()
        if project_id:
            query += " WHERE project_id = ?"
            params = (project_id,)
        rows = self._fetch_all(query + " ORDER BY updated_at DESC", params)
        return [_session_from_row(row) for row in rows]

    def create_session(
        self,
        session_id: str,
        *,
        title: str | None = None,
        project_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> SessionRecord:
        """Create a session if it doesn't exist."""
        existing = self.fetch_session(session_id)
        if existing:
            return existing
        now = _timestamp()
        record = SessionRecord(session_id, project_id, title, dict(metadata or {}), now, now)
        self._execute(
            """INSERT INTO sessions (id, project_id, title, metadata, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                record.session_id,
                record.project_id,
                record.title,
                json.dumps(record.metadata, ensure_ascii=True),
                record.created_at,
                record.updated_at,
            ),
        )
        return record

    def fetch_session(self, session_id: str) -> SessionRecord | None:
        """Fetch a session by ID."""
        rows = self._fetch_all(
            """SELECT id, project_id, title, metadata, created_at, updated_at
               FROM sessions WHERE id = ?""",
            (session_id,),
        )
        return _session_from_row(rows[0]) if rows else None

    def update_metadata(self, session_id: str, metadata: dict[str, Any]) -> None:
        """Replace the metadata of a session."""
        self._execute(
            "UPDATE sessions SET metadata = ?, updated_at = ? WHERE id = ?",
            (json.dumps(metadata, ensure_ascii=True), _timestamp(), session_id),
        )

    def delete_session(self, session_id: str) -> None:
        """Delete a session and its messages."""
        self._execute("DELETE FROM messages WHERE session_id = ?", (session_id,))
        self._execute("DELETE FROM sessions WHERE id = ?", (session_id,))

    def list_messages(self, session_id: str) -> list[MessageRecord]:
        """Return messages for a session in chronological order."""
        rows = self._fetch_all(
            """SELECT id, session_id, role, content, created_at, sources,
                      related_materials, suggested_questions
               FROM messages WHERE session_id = ? ORDER BY created_at ASC, rowid ASC""",
            (session_id,),
        )
        return [
            MessageRecord(
                message_id=row[0],
                session_id=row[1],
                role=row[2],
                content=row[3],
                created_at=row[4],
                sources=json.loads(row[5]) if row[5] else [],
                related_materials=json.loads(row[6]) if row[6] else [],
                suggested_questions=json.loads(row[7]) if row[7] else [],
            )
            for row in rows
        ]

    def append_message(self, record: MessageRecord) -> None:
        """Persist a message to storage."""
        self._execute(
            """INSERT OR REPLACE INTO messages
               (id, session_id, role, content, created_at, sources,
                related_materials, suggested_questions)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                record.message_id,
                record.session_id,
                record.role,
                record.content,
                record.created_at,
                json.dumps(record.sources, ensure_ascii=True),
                json.dumps(record.related_materials, ensure_ascii=True),
                json.dumps(record.suggested_questions, ensure_ascii=True),
            ),
        )
        self._execute(
            "UPDATE sessions SET updated_at = ? WHERE id = ?",
            (_timestamp(), record.session_id),
        )

    def upsert_material(self, name: str, data: dict[str, Any]) -> None:
        """Store a materials-intelligence record keyed by material name."""
        self._execute(
            "INSERT OR REPLACE INTO materials (material, data) VALUES (?, ?)",
            (name, json.dumps({**data, "material": name}, ensure_ascii=True)),
        )

    def lookup_materials(self, names: list[str]) -> list[dict[str, Any]]:
        """Return the stored records for `names`, in the order requested."""
        if not names:
            return []
        placeholders = ", ".join("?" for _ in names)
        rows = self._fetch_all(
            f"SELECT material, data FROM materials WHERE material IN ({placeholders})",  # noqa: S608
            tuple(names),
        )
        found = {row[0]: json.loads(row[1]) for row in rows}
        return [found[name] for name in names if name in found]

    def _init_db(self) -> None:
        with sqlite3.connect(self._db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sessions (
                    id TEXT PRIMARY KEY,
                    project_id TEXT,
                    title TEXT,
                    metadata TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    id TEXT PRIMARY KEY,
                    session_id TEXT NOT NULL,
                    role TEXT NOT NULL,
                    content TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    sources TEXT,
                    related_materials TEXT,
                    suggested_questions TEXT,
                    FOREIGN KEY (session_id) REFERENCES sessions(id) ON DELETE CASCADE
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS materials (
                    material TEXT PRIMARY KEY,
                    data TEXT NOT NULL
                )
                """
            )

    def _fetch_all(self, query: str, params: tuple[Any, ...] = ()) -> list[tuple[Any, ...]]:
        with sqlite3.connect(self._db_path) as conn:
            cursor = conn.execute(query, params)
            return cursor.fetchall()

    def _execute(self, query: str, params: tuple[Any, ...]) -> None:
        with sqlite3.connect(self._db_path) as conn:
            conn.execute(query, params)
            conn.commit()


def _session_from_row(row: tuple[Any, ...]) -> SessionRecord:
    return SessionRecord(
        session_id=row[0],
        project_id=row[1],
        title=row[2],
        metadata=json.loads(row[3]) if row[3] else {},
        created_at=row[4],
        updated_at=row[5],
    )


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()
