"""Definitions of the note tools and their registration with a tool server."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from notegraph.handlers import (
    Handler,
    new_create_handler,
    new_delete_handler,
    new_get_handler,
    new_list_handler,
    new_update_handler,
)
from notegraph.model import NoteStorage, NoteType

NOTE_TYPES = [kind.value for kind in NoteType]
ORDER_FIELDS = ["created_at", "updated_at", "title"]
ORDER_DIRECTIONS = ["asc", "desc"]


class ToolServer(Protocol):
    """Anything that tools can be added to."""

    def add_tool(self, tool: dict[str, Any], handler: Handler) -> Any: ...


@dataclass(frozen=True)
class ToolSpec:
    """A tool's name, description, input schema and handler."""

    name: str
    description: str
    input_schema: dict[str, Any]
    handler: Handler

    def definition(self) -> dict[str, Any]:
        """Return the tool as it is announced to clients."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


def _schema(properties: dict[str, Any], required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def _string(description: str, enum: list[str] | None = None) -> dict[str, Any]:
    prop: dict[str, Any] = {"type": "string", "description": description}
    if enum is not None:
        prop["enum"] = list(enum)
    return prop


def _string_array(description: str) -> dict[str, Any]:
    return {"type": "array", "description": description, "items": {"type": "string"}}


def _object(description: str) -> dict[str, Any]:
    return {"type": "object", "description": description}


def note_tools(storage: NoteStorage) -> list[ToolSpec]:
    """Return the note tools, each bound to the given storage."""
    types_text = "(text, markdown, code, link, image)"
    return [
        ToolSpec(
            name="create_note",
            description="Create a new note",
            handler=new_create_handler(storage),
            input_schema=_schema(
                {
                    "title": _string("Title of the note"),
                    "content": _string("Content of the note"),
                    "type": _string(f"Type of the note {types_text}", NOTE_TYPES),
                    "tags": _string_array("Tags associated with the note"),
                    "metadata": _object("Additional metadata for the note"),
                },
                ["title", "content"],
            ),
        ),
        ToolSpec(
            name="get_note",
            description="Get a note by ID",
            handler=new_get_handler(storage),
            input_schema=_schema(
                {"id": _string("Unique identifier of the note")},
                ["id"],
            ),
        ),
        ToolSpec(
            name="update_note",
            description="Update an existing note",
            handler=new_update_handler(storage),
            input_schema=_schema(
                {
                    "id": _string("Unique identifier of the note"),
                    "title": _string("Updated title of the note"),
                    "content": _string("Updated content of the note"),
                    "type": _string(f"Updated type of the note {types_text}", NOTE_TYPES),
                    "tags": _string_array("Updated tags associated with the note"),
                    "metadata": _object("Updated metadata for the note"),
                },
                ["id"],
            ),
        ),
        ToolSpec(
            name="delete_note",
            description="Delete a note by ID",
            handler=new_delete_handler(storage),
            input_schema=_schema(
                {"id": _string("Unique identifier of the note to delete")},
                ["id"],
            ),
        ),
        ToolSpec(
            name="list_notes",
            description="List all notes with optional filtering and pagination",
            handler=new_list_handler(storage),
            input_schema=_schema(
                {
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of notes to return (default: 100)",
                        "minimum": 1,
                        "maximum": 1000,
                    },
                    "offset": {
                        "type": "integer",
                        "description": "Number of notes to skip (default: 0)",
                        "minimum": 0,
                    },
                    "search": _string("Search term to filter notes by title or content"),
                    "type": _string("Filter by note type", NOTE_TYPES),
                    "tags": _string_array(
                        "Filter by tags (returns notes that have any of the specified tags)"
                    ),
                    "order_by": _string(
                        "Field to order by (created_at, updated_at, title)", ORDER_FIELDS
                    ),
                    "order_dir": _string("Order direction (asc, desc)", ORDER_DIRECTIONS),
                }
            ),
        ),
    ]


def register_tools(server: ToolServer, storage: NoteStorage) -> None:
    """Add every note tool to the server."""
    for spec in note_tools(storage):
        server.add_tool(spec.definition(), spec.handler)