"""Note storage backed by a SQLite database."""

from __future__ import annotations

import json
import re
import sqlite3
from datetime import datetime, timezone
from typing import Any, Optional

from notegraph.model import (
    CreateNoteRequest,
    ListNotesRequest,
    ListNotesResponse,
    Note,
    NoteStorage,
    NoteType,
    UpdateNoteRequest,
)

_NOTE_TYPES = ", ".join(f"'{kind.value}'" for kind in NoteType)

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS notes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    type TEXT NOT NULL CHECK (type IN ({_NOTE_TYPES})),
    tags TEXT NOT NULL DEFAULT '[]',
    metadata TEXT,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_notes_type ON notes(type);
CREATE INDEX IF NOT EXISTS idx_notes_created_at ON notes(created_at);
"""

_FTS_TRIGGERS = """
CREATE TRIGGER IF NOT EXISTS notes_fts_insert AFTER INSERT ON notes BEGIN
    INSERT INTO notes_fts(rowid, title, content) VALUES (new.id, new.title, new.content);
END;
CREATE TRIGGER IF NOT EXISTS notes_fts_delete AFTER DELETE ON notes BEGIN
    DELETE FROM notes_fts WHERE rowid = old.id;
END;
CREATE TRIGGER IF NOT EXISTS notes_fts_update AFTER UPDATE ON notes BEGIN
    DELETE FROM notes_fts WHERE rowid = old.id;
    INSERT INTO notes_fts(rowid, title, content) VALUES (new.id, new.title, new.content);
END;
"""

_COLUMNS = "id, title, content, type, tags, metadata, created_at, updated_at"
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_.]*")
_DIRECTIONS = ("ASC", "DESC")


class NoteStorageError(Exception):
    """A note storage operation failed."""


class NoteNotFoundError(NoteStorageError):
    """No note has the requested id."""

    def __init__(self, note_id: int) -> None:
        self.note_id = note_id
        super().__init__(f"note not found: {note_id}")


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        moment = value
    else:
        moment = datetime.fromisoformat(str(value).replace("T", " ").rstrip("Z"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _row_to_note(row: tuple) -> Note:
    note_id, title, content, note_type, tags_json, metadata_json, created, updated = row
    try:
        tags = json.loads(tags_json)
    except (TypeError, ValueError) as exc:
        raise NoteStorageError(f"failed to unmarshal tags: {exc}") from exc
    metadata = None
    if metadata_json is not None and metadata_json != "null":
        try:
            metadata = json.loads(metadata_json)
        except ValueError as exc:
            raise NoteStorageError(f"failed to unmarshal metadata: {exc}") from exc
    return Note(
        id=note_id,
        title=title,
        content=content,
        type=note_type,
        tags=tags,
        metadata=metadata,
        created_at=_parse_timestamp(created),
        updated_at=_parse_timestamp(updated),
    )


def _to_json(value: Any, what: str) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as exc:
        raise NoteStorageError(f"failed to marshal {what}: {exc}") from exc


class SQLiteNoteStorage(NoteStorage):
    """Stores notes in a SQLite file, with a full-text index over title and content."""

    def __init__(self, db_path: str, *, create_schema: bool = True) -> None:
        try:
            self.connection: Optional[sqlite3.Connection] = sqlite3.connect(
                db_path, isolation_level=None, check_same_thread=False
            )
        except sqlite3.Error as exc:
            raise NoteStorageError(f"failed to open database: {exc}") from exc
        try:
            self.connection.execute("SELECT 1").fetchone()
        except sqlite3.Error as exc:
            self.connection.close()
            raise NoteStorageError(f"failed to ping database: {exc}") from exc
        if create_schema:
            self._create_schema()

    def __enter__(self) -> SQLiteNoteStorage:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _create_schema(self) -> None:
        conn = self._conn()
        try:
            conn.executescript(_SCHEMA)
            try:
                conn.execute(
                    "CREATE VIRTUAL TABLE IF NOT EXISTS notes_fts USING fts5(title, content)"
                )
            except sqlite3.OperationalError:
                conn.execute(
                    "CREATE VIRTUAL TABLE IF NOT EXISTS notes_fts USING fts4(title, content)"
                )
            conn.executescript(_FTS_TRIGGERS)
        except sqlite3.Error as exc:
            raise NoteStorageError(f"failed to create schema: {exc}") from exc

    def _conn(self) -> sqlite3.Connection:
        if self.connection is None:
            raise NoteStorageError("database connection is closed")
        return self.connection

    def close(self) -> None:
        """Close the database connection; closing twice is harmless."""
        if self.connection is not None:
            connection, self.connection = self.connection, None
            connection.close()

    def create(self, req: CreateNoteRequest) -> Note:
        """Insert a new note and return it as stored."""
        tags_json = _to_json(req.tags, "tags") if req.tags is not None else "[]"
        metadata_json = _to_json(req.metadata, "metadata") if req.metadata is not None else "null"
        try:
            cursor = self._conn().execute(
                "INSERT INTO notes (title, content, type, tags, metadata) VALUES (?, ?, ?, ?, ?)",
                (req.title, req.content, req.type, tags_json, metadata_json),
            )
        except sqlite3.Error as exc:
            raise NoteStorageError(f"failed to create note: {exc}") from exc
        return self.get(cursor.lastrowid)

    def get(self, note_id: int) -> Note:
        """Return the note with the given id, or raise NoteNotFoundError."""
        try:
            row = self._conn().execute(
                f"SELECT {_COLUMNS} FROM notes WHERE id = ?", (note_id,)
            ).fetchone()
        except sqlite3.Error as exc:
            raise NoteStorageError(f"failed to get note: {exc}") from exc
        if row is None:
            raise NoteNotFoundError(note_id)
        return _row_to_note(row)

    def update(self, note_id: int, req: UpdateNoteRequest) -> Note:
        """Change the given fields of a note and return the result."""
        changes: list[tuple[str, Any]] = []
        if req.title is not None:
            changes.append(("title", req.title))
        if req.content is not None:
            changes.append(("content", req.content))
        if req.type is not None:
            changes.append(("type", req.type))
        if req.tags is not None:
            changes.append(("tags", _to_json(req.tags, "tags")))
        if req.metadata is not None:
            changes.append(("metadata", _to_json(req.metadata, "metadata")))

        if not changes:
            return self.get(note_id)

        assignments = ", ".join(f"{column} = ?" for column, _ in changes)
        query = f"UPDATE notes SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?"
        params = [value for _, value in changes] + [note_id]
        try:
            cursor = self._conn().execute(query, params)
        except sqlite3.Error as exc:
            raise NoteStorageError(f"failed to update note: {exc}") from exc
        if cursor.rowcount == 0:
            raise NoteNotFoundError(note_id)
        return self.get(note_id)

    def delete(self, note_id: int) -> None:
        """Remove a note, or raise NoteNotFoundError if there is none."""
        try:
            cursor = self._conn().execute("DELETE FROM notes WHERE id = ?", (note_id,))
        except sqlite3.Error as exc:
            raise NoteStorageError(f"failed to delete note: {exc}") from exc
        if cursor.rowcount == 0:
            raise NoteNotFoundError(note_id)

    def list(self, req: ListNotesRequest) -> ListNotesResponse:
        """Return one page of notes matching every filter, and the total that matched."""
        clauses: list[str] = []
        params: list[Any] = []
        if req.search:
            clauses.append("notes.id IN (SELECT rowid FROM notes_fts WHERE notes_fts MATCH ?)")
            params.append(req.search)
        for tag in req.tags or ():
            clauses.append("tags LIKE ?")
            params.append(f'%"{tag}"%')
        if req.type:
            clauses.append("type = ?")
            params.append(req.type)
        where = "WHERE " + " AND ".join(clauses) if clauses else ""

        order_by = req.order_by or "created_at"
        order_dir = req.order_dir.upper() if req.order_dir else "DESC"
        if not _IDENTIFIER.fullmatch(order_by):
            raise NoteStorageError(f"failed to query notes: invalid order field {order_by!r}")
        if order_dir not in _DIRECTIONS:
            raise NoteStorageError(f"failed to query notes: invalid order direction {order_dir!r}")

        conn = self._conn()
        try:
            (total,) = conn.execute(f"SELECT COUNT(*) FROM notes {where}", params).fetchone()
        except sqlite3.Error as exc:
            raise NoteStorageError(f"failed to count notes: {exc}") from exc

        query = (
            f"SELECT {_COLUMNS} FROM notes {where} "
            f"ORDER BY {order_by} {order_dir} LIMIT ? OFFSET ?"
        )
        try:
            rows = conn.execute(query, [*params, req.limit, req.offset]).fetchall()
        except sqlite3.Error as exc:
            raise NoteStorageError(f"failed to query notes: {exc}") from exc
        return ListNotesResponse(items=[_row_to_note(row) for row in rows], total=total)