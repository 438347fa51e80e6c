import json
from datetime import datetime, timezone

import pytest

from notegraph.handlers import (
    ToolError,
    ToolResult,
    new_create_handler,
    new_delete_handler,
    new_get_handler,
    new_list_handler,
    new_update_handler,
)
from notegraph.model import (
    CreateNoteRequest,
    ListNotesRequest,
    ListNotesResponse,
    Note,
    NoteStorage,
    UpdateNoteRequest,
)

NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


class FakeStorage(NoteStorage):
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def _answer(self, *call):
        self.calls.append(call)
        if self.error is not None:
            raise self.error
        return self.result

    def create(self, req):
        return self._answer("create", req)

    def get(self, note_id):
        return self._answer("get", note_id)

    def update(self, note_id, req):
        return self._answer("update", note_id, req)

    def delete(self, note_id):
        return self._answer("delete", note_id)

    def list(self, req):
        return self._answer("list", req)


def make_note(**fields):
    base = dict(
        id=1,
        title="Test Note",
        content="Test Content",
        type="markdown",
        tags=["tag1", "tag2"],
        metadata={"key": "value"},
        created_at=NOW,
        updated_at=NOW,
    )
    base.update(fields)
    return Note(**base)


# create


def test_create_successful():
    metadata = {"key": "value"}
    storage = FakeStorage(result=make_note())
    result = new_create_handler(storage)(
        {
            "title": "Test Note",
            "content": "Test Content",
            "type": "markdown",
            "tags": ["tag1", "tag2"],
            "metadata": metadata,
        }
    )
    assert storage.calls == [
        (
            "create",
            CreateNoteRequest(
                title="Test Note",
                content="Test Content",
                type="markdown",
                tags=["tag1", "tag2"],
                metadata=metadata,
            ),
        )
    ]
    assert "Successfully created note with ID: 1" in result.text
    body = json.loads(result.text.split("\n\n", 1)[1])
    assert body["title"] == "Test Note"
    assert body["tags"] == ["tag1", "tag2"]


def test_create_with_defaults():
    storage = FakeStorage(result=make_note(id=2, type="text", tags=None, metadata=None))
    result = new_create_handler(storage)({"title": "Test Note", "content": "Test Content"})
    assert storage.calls == [
        (
            "create",
            CreateNoteRequest(title="Test Note", content="Test Content", type="text", tags=None),
        )
    ]
    assert "Successfully created note with ID: 2" in result.text
    body = json.loads(result.text.split("\n\n", 1)[1])
    assert body["tags"] is None
    assert body["metadata"] is None


@pytest.mark.parametrize(
    "args, message",
    [
        ({"content": "Test Content"}, "title is required"),
        ({"title": "Test Note"}, "content is required"),
    ],
)
def test_create_missing_fields(args, message):
    storage = FakeStorage()
    with pytest.raises(ToolError, match=message):
        new_create_handler(storage)(args)
    assert storage.calls == []


def test_create_storage_error():
    storage = FakeStorage(error=RuntimeError("storage error"))
    with pytest.raises(ToolError, match="failed to create note"):
        new_create_handler(storage)({"title": "Test Note", "content": "Test Content"})


def test_create_drops_non_string_tags():
    storage = FakeStorage(result=make_note())
    new_create_handler(storage)({"title": "T", "content": "C", "tags": ["a", 3, "b"]})
    assert storage.calls[0][1].tags == ["a", "b"]


def test_invalid_arguments_format():
    with pytest.raises(ToolError, match="invalid arguments format"):
        new_create_handler(FakeStorage())(["not", "a", "mapping"])


def test_result_json_format():
    storage = FakeStorage(result=make_note(title="<b> & co"))
    result = new_get_handler(storage)({"id": "1"})
    assert '"created_at": "2024-01-02T03:04:05Z"' in result.text
    assert "\\u003cb\\u003e \\u0026 co" in result.text
    assert json.loads(result.text)["title"] == "<b> & co"


# delete


def test_delete_successful():
    storage = FakeStorage()
    result = new_delete_handler(storage)({"id": "1"})
    assert storage.calls == [("delete", 1)]
    assert "Successfully deleted note with ID: 1" in result.text
    assert result.to_dict() == {
        "content": [{"type": "text", "text": "Successfully deleted note with ID: 1"}]
    }


@pytest.mark.parametrize(
    "factory", [new_delete_handler, new_get_handler, new_update_handler]
)
def test_missing_id(factory):
    with pytest.raises(ToolError, match="id is required"):
        factory(FakeStorage())({"title": "Updated Title"})


@pytest.mark.parametrize(
    "factory", [new_delete_handler, new_get_handler, new_update_handler]
)
def test_invalid_id_format(factory):
    storage = FakeStorage()
    with pytest.raises(ToolError, match="invalid id format"):
        factory(storage)({"id": "invalid", "title": "Updated Title"})
    assert storage.calls == []


def test_id_out_of_range():
    with pytest.raises(ToolError, match="out of range"):
        new_delete_handler(FakeStorage())({"id": "99999999999999999999"})


def test_delete_storage_error():
    storage = FakeStorage(error=RuntimeError("storage error"))
    with pytest.raises(ToolError, match="failed to delete note"):
        new_delete_handler(storage)({"id": "1"})


# get


def test_get_successful():
    storage = FakeStorage(result=make_note())
    result = new_get_handler(storage)({"id": "1"})
    assert storage.calls == [("get", 1)]
    assert "Test Note" in result.text
    assert json.loads(result.text)["id"] == 1


def test_get_not_found():
    storage = FakeStorage(result=None)
    result = new_get_handler(storage)({"id": "999"})
    assert storage.calls == [("get", 999)]
    assert result == ToolResult("Note with ID 999 not found")


def test_get_storage_error():
    storage = FakeStorage(error=RuntimeError("storage error"))
    with pytest.raises(ToolError, match="failed to get note"):
        new_get_handler(storage)({"id": "1"})


# list


def test_list_with_results():
    response = ListNotesResponse(
        items=[
            make_note(id=1, title="Note 1", content="Content 1", type="text", tags=["tag1"]),
            make_note(
                id=2, title="Note 2", content="Content 2", tags=["tag2"], metadata=None
            ),
        ],
        total=2,
    )
    storage = FakeStorage(result=response)
    result = new_list_handler(storage)({"limit": 10.0, "offset": 0.0})
    assert storage.calls == [("list", ListNotesRequest(limit=10, offset=0))]
    assert "Found 2 notes (total: 2)" in result.text
    body = json.loads(result.text.split("\n\n", 1)[1])
    assert body["count"] == 2
    assert body["total"] == 2
    assert [item["title"] for item in body["items"]] == ["Note 1", "Note 2"]


def test_list_with_filtering():
    response = ListNotesResponse(items=[make_note(title="Test Note")], total=1)
    storage = FakeStorage(result=response)
    result = new_list_handler(storage)(
        {
            "search": "test",
            "type": "markdown",
            "tags": ["tag1", "tag2"],
            "order_by": "created_at",
            "order_dir": "desc",
        }
    )
    assert storage.calls == [
        (
            "list",
            ListNotesRequest(
                limit=100,
                offset=0,
                search="test",
                type="markdown",
                tags=["tag1", "tag2"],
                order_by="created_at",
                order_dir="desc",
            ),
        )
    ]
    assert "Found 1 notes (total: 1)" in result.text


def test_list_empty():
    storage = FakeStorage(result=ListNotesResponse(items=[], total=0))
    result = new_list_handler(storage)({})
    assert storage.calls == [("list", ListNotesRequest(limit=100, offset=0))]
    assert result.text == "No notes found"


def test_list_storage_error():
    storage = FakeStorage(error=RuntimeError("storage error"))
    with pytest.raises(ToolError, match="failed to list notes"):
        new_list_handler(storage)({})


# update


def test_update_successful():
    metadata = {"key": "updated_value"}
    note = make_note(
        title="Updated Title",
        content="Updated Content",
        type="code",
        tags=["tag1", "tag3"],
        metadata=metadata,
    )
    storage = FakeStorage(result=note)
    result = new_update_handler(storage)(
        {
            "id": "1",
            "title": "Updated Title",
            "content": "Updated Content",
            "type": "code",
            "tags": ["tag1", "tag3"],
            "metadata": metadata,
        }
    )
    assert storage.calls == [
        (
            "update",
            1,
            UpdateNoteRequest(
                title="Updated Title",
                content="Updated Content",
                type="code",
                tags=["tag1", "tag3"],
                metadata=metadata,
            ),
        )
    ]
    assert "Successfully updated note with ID: 1" in result.text


def test_update_partial():
    note = make_note(title="Updated Title Only", content="Original Content", type="text")
    storage = FakeStorage(result=note)
    result = new_update_handler(storage)({"id": "1", "title": "Updated Title Only"})
    assert storage.calls == [("update", 1, UpdateNoteRequest(title="Updated Title Only"))]
    assert "Successfully updated note with ID: 1" in result.text


def test_update_empty_content_is_kept_empty_title_is_dropped():
    storage = FakeStorage(result=make_note())
    new_update_handler(storage)({"id": "1", "title": "", "content": ""})
    assert storage.calls[0][2] == UpdateNoteRequest(content="")


def test_update_not_found():
    storage = FakeStorage(result=None)
    result = new_update_handler(storage)({"id": "999", "title": "Updated Title"})
    assert result.text == "Note with ID 999 not found"


def test_update_storage_error():
    storage = FakeStorage(error=RuntimeError("storage error"))
    with pytest.raises(ToolError, match="failed to update note"):
        new_update_handler(storage)({"id": "1", "title": "Updated Title"})