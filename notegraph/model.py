"""Domain model for notes and the storage interface that persists them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


class NoteType(str, Enum):
    """The kind of content a note holds."""

    TEXT = "text"
    MARKDOWN = "markdown"
    CODE = "code"
    LINK = "link"
    IMAGE = "image"


@dataclass
class Note:
    """A stored note."""

    id: int
    title: str
    content: str
    type: str
    tags: Optional[list[str]] = None
    metadata: Optional[dict[str, Any]] = None
    created_at: datetime = _ZERO_TIME
    updated_at: datetime = _ZERO_TIME

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable mapping of every field."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "type": self.type,
            "tags": list(self.tags) if self.tags is not None else None,
            "metadata": dict(self.metadata) if self.metadata is not None else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class CreateNoteRequest:
    """Fields for a new note."""

    title: str
    content: str
    type: str
    tags: Optional[list[str]] = None
    metadata: Optional[dict[str, Any]] = None


@dataclass
class UpdateNoteRequest:
    """Fields to change on an existing note; None leaves a field as it is."""

    title: Optional[str] = None
    content: Optional[str] = None
    type: Optional[str] = None
    tags: Optional[list[str]] = None
    metadata: Optional[dict[str, Any]] = None


@dataclass
class ListNotesRequest:
    """Pagination, filtering and ordering for a note listing."""

    limit: int = 0
    offset: int = 0
    search: str = ""
    tags: Optional[list[str]] = None
    type: str = ""
    order_by: str = ""
    order_dir: str = ""


@dataclass
class ListNotesResponse:
    """One page of notes together with the total number that matched."""

    items: list[Note] = field(default_factory=list)
    total: int = 0


class NoteStorage(ABC):
    """Persistence operations for notes."""

    @abstractmethod
    def create(self, req: CreateNoteRequest) -> Note:
        """Store a new note and return it."""

    @abstractmethod
    def get(self, note_id: int) -> Optional[Note]:
        """Return the note with the given id."""

    @abstractmethod
    def update(self, note_id: int, req: UpdateNoteRequest) -> Optional[Note]:
        """Apply the given changes to a note and return the result."""

    @abstractmethod
    def delete(self, note_id: int) -> None:
        """Remove the note with the given id."""

    @abstractmethod
    def list(self, req: ListNotesRequest) -> ListNotesResponse:
        """Return a filtered, ordered page of notes."""