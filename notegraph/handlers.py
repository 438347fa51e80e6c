"""Tool handlers that expose note storage operations to tool-calling clients."""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from notegraph.model import (
    CreateNoteRequest,
    ListNotesRequest,
    Note,
    NoteStorage,
    UpdateNoteRequest,
)

DEFAULT_LIST_LIMIT = 100
DEFAULT_LIST_OFFSET = 0
DEFAULT_NOTE_TYPE = "text"

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_DECIMAL = re.compile(r"[+-]?[0-9]+")
_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class ToolError(Exception):
    """A tool call could not be completed."""


@dataclass(frozen=True)
class ToolResult:
    """The text a tool call returns to its caller."""

    text: str
    type: str = "text"

    def to_dict(self) -> dict[str, Any]:
        """Return the result in its wire shape."""
        return {"content": [{"type": self.type, "text": self.text}]}


Handler = Callable[[Any], ToolResult]


def _format_time(moment: datetime) -> str:
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += f".{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset()
    if offset is None or offset == timedelta(0):
        return text + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    hours, mins = divmod(abs(minutes), 60)
    return f"{text}{sign}{hours:02d}:{mins:02d}"


def _note_fields(note: Note) -> dict[str, Any]:
    return {
        "id": note.id,
        "title": note.title,
        "content": note.content,
        "type": note.type,
        "tags": note.tags,
        "metadata": note.metadata,
        "created_at": _format_time(note.created_at),
        "updated_at": _format_time(note.updated_at),
    }


def _to_json(value: Any, what: str) -> str:
    try:
        text = json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise ToolError(f"failed to marshal {what}: {exc}") from exc
    for char, escaped in _JSON_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


def _arguments(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise ToolError("invalid arguments format")
    return raw


def _parse_id(arguments: dict[str, Any]) -> int:
    raw = arguments.get("id")
    if not isinstance(raw, str) or not raw:
        raise ToolError("id is required")
    if not _DECIMAL.fullmatch(raw):
        raise ToolError(f'invalid id format: parsing "{raw}": invalid syntax')
    value = int(raw)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ToolError(f'invalid id format: parsing "{raw}": value out of range')
    return value


def _string_tags(arguments: dict[str, Any]) -> tuple[bool, Optional[list[str]]]:
    """Return whether tags were given as a list, and their string members."""
    raw = arguments.get("tags")
    if not isinstance(raw, list):
        return False, None
    return True, [tag for tag in raw if isinstance(tag, str)] or None


def _metadata(arguments: dict[str, Any]) -> Optional[dict[str, Any]]:
    raw = arguments.get("metadata")
    return raw if isinstance(raw, dict) else None


def _number(arguments: dict[str, Any], key: str, default: int) -> int:
    raw = arguments.get(key)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return int(raw)
    return default


def _string(arguments: dict[str, Any], key: str) -> Optional[str]:
    raw = arguments.get(key)
    return raw if isinstance(raw, str) else None


def _not_found(note_id: int) -> ToolResult:
    return ToolResult(f"Note with ID {note_id} not found")


def new_create_handler(storage: NoteStorage) -> Handler:
    """Return a handler that creates a note from tool arguments."""

    def handle(raw_arguments: Any) -> ToolResult:
        arguments = _arguments(raw_arguments)
        title = _string(arguments, "title")
        if not title:
            raise ToolError("title is required")
        content = _string(arguments, "content")
        if not content:
            raise ToolError("content is required")
        note_type = _string(arguments, "type") or DEFAULT_NOTE_TYPE
        _, tags = _string_tags(arguments)

        request = CreateNoteRequest(
            title=title,
            content=content,
            type=note_type,
            tags=tags,
            metadata=_metadata(arguments),
        )
        try:
            note = storage.create(request)
        except Exception as exc:
            raise ToolError(f"failed to create note: {exc}") from exc

        body = _to_json(_note_fields(note), "result")
        return ToolResult(f"Successfully created note with ID: {note.id}\n\n{body}")

    return handle


def new_delete_handler(storage: NoteStorage) -> Handler:
    """Return a handler that deletes a note by id."""

    def handle(raw_arguments: Any) -> ToolResult:
        note_id = _parse_id(_arguments(raw_arguments))
        try:
            storage.delete(note_id)
        except Exception as exc:
            raise ToolError(f"failed to delete note: {exc}") from exc
        return ToolResult(f"Successfully deleted note with ID: {note_id}")

    return handle


def new_get_handler(storage: NoteStorage) -> Handler:
    """Return a handler that fetches a note by id."""

    def handle(raw_arguments: Any) -> ToolResult:
        note_id = _parse_id(_arguments(raw_arguments))
        try:
            note = storage.get(note_id)
        except Exception as exc:
            raise ToolError(f"failed to get note: {exc}") from exc
        if note is None:
            return _not_found(note_id)
        return ToolResult(_to_json(_note_fields(note), "result"))

    return handle


def new_list_handler(storage: NoteStorage) -> Handler:
    """Return a handler that lists notes with filtering and pagination."""

    def handle(raw_arguments: Any) -> ToolResult:
        arguments = _arguments(raw_arguments)
        request = ListNotesRequest(
            limit=_number(arguments, "limit", DEFAULT_LIST_LIMIT),
            offset=_number(arguments, "offset", DEFAULT_LIST_OFFSET),
        )
        for key in ("search", "type", "order_by", "order_dir"):
            value = _string(arguments, key)
            if value is not None:
                setattr(request, key, value)
        given, tags = _string_tags(arguments)
        if given:
            request.tags = tags

        try:
            response = storage.list(request)
        except Exception as exc:
            raise ToolError(f"failed to list notes: {exc}") from exc

        if not response.items:
            return ToolResult("No notes found")

        summary = {
            "total": response.total,
            "count": len(response.items),
            "items": [_note_fields(note) for note in response.items],
        }
        body = _to_json(summary, "results")
        return ToolResult(
            f"Found {len(response.items)} notes (total: {response.total}):\n\n{body}"
        )

    return handle


def new_update_handler(storage: NoteStorage) -> Handler:
    """Return a handler that changes the given fields of a note."""

    def handle(raw_arguments: Any) -> ToolResult:
        arguments = _arguments(raw_arguments)
        note_id = _parse_id(arguments)

        request = UpdateNoteRequest()
        title = _string(arguments, "title")
        if title:
            request.title = title
        content = _string(arguments, "content")
        if content is not None:
            request.content = content
        note_type = _string(arguments, "type")
        if note_type:
            request.type = note_type
        given, tags = _string_tags(arguments)
        if given:
            request.tags = tags
        request.metadata = _metadata(arguments)

        try:
            note = storage.update(note_id, request)
        except Exception as exc:
            raise ToolError(f"failed to update note: {exc}") from exc
        if note is None:
            return _not_found(note_id)

        body = _to_json(_note_fields(note), "result")
        return ToolResult(f"Successfully updated note with ID: {note.id}\n\n{body}")

    return handle