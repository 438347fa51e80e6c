# notegraph

Notes kept in SQLite, a small schema-migration driver for SQLite databases,
and tool handlers that expose note operations to a tool-calling server.
It needs nothing beyond the Python standard library.

## Installation

    pip install notegraph

## Notes

`notegraph.model` holds the data types (`Note`, `NoteType`,
`CreateNoteRequest`, `UpdateNoteRequest`, `ListNotesRequest`,
`ListNotesResponse`) and the abstract `NoteStorage` interface.

`notegraph.sqlite_storage.SQLiteNoteStorage` implements that interface on a
SQLite file. When it is opened it creates the `notes` table, its indexes and a
full-text index over title and content, unless `create_schema=False` is given.
It can be used as a context manager.

    from notegraph.model import CreateNoteRequest, UpdateNoteRequest, ListNotesRequest
    from notegraph.sqlite_storage import SQLiteNoteStorage

    with SQLiteNoteStorage("notes.db") as storage:
        note = storage.create(CreateNoteRequest(title="Idea", content="Write it down",
                                                type="text", tags=["inbox"]))
        storage.update(note.id, UpdateNoteRequest(title="Better idea"))
        page = storage.list(ListNotesRequest(limit=10, tags=["inbox"]))
        print(page.total, [n.title for n in page.items])
        storage.delete(note.id)

- The note type must be one of `text`, `markdown`, `code`, `link`, `image`.
- Tags and metadata are stored as JSON; a note created without tags reads
  back with an empty tag list, one without metadata with `None`.
- In an update, fields left as `None` are not changed.
- `list` combines every given filter: full-text `search`, each of `tags`,
  and `type`. It orders by `order_by` (default `created_at`) in `order_dir`
  (`asc` or `desc`, default `desc`) and pages with `limit` and `offset`.
  `total` is the number of notes that matched before paging.
- `get`, `update` and `delete` raise `NoteNotFoundError` for a missing id;
  other failures raise `NoteStorageError`.

## Migration driver

`notegraph.driver.Driver` keeps a migration-version table and an advisory
lock table in a SQLite database and runs migration scripts:

    from notegraph.config import build_url, with_migrations_table
    from notegraph.driver import Driver

    with Driver().open(build_url("app.db", with_migrations_table("schema_migrations"))) as driver:
        driver.lock()
        driver.run("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
        driver.set_version(1, False)
        driver.unlock()
        print(driver.version())   # (1, False)

- `run` takes text, bytes or a readable file. Unless `x-no-tx-wrap` is set the
  script runs in one transaction of the configured mode and is rolled back on
  error. An empty script does nothing.
- `set_version(version, True)` adds a dirty record; `set_version(version, False)`
  replaces every earlier record. `version()` returns the highest recorded
  version and its dirty flag, or `(-1, False)` when there is none.
- `drop` drops every user table in the database.
- `lock` waits up to 15 seconds and then raises `LockTimeoutError`;
  `notegraph.lock.LockManager` can also be used directly.
- `with_instance(connection, config)` wraps an open `sqlite3.Connection`.
- `new_migrator(db_path, *options)` opens a driver for a path.
- After `close`, every operation raises `DatabaseClosedError`; database
  failures raise `DatabaseError`. All driver errors derive from
  `notegraph.errors.MigrationDriverError`.

URLs use the `sqlite3://` scheme and accept the query options
`x-migrations-table`, `x-no-tx-wrap` and `x-tx-mode`
(`DEFERRED`, `IMMEDIATE` or `EXCLUSIVE`). `notegraph.config.parse_config`
reads them into a `Config` and raises `ConfigError` for a bad scheme, an
empty path or a bad option; `build_url` with `with_migrations_table`,
`with_no_tx_wrap` and `with_tx_mode` writes them.

## Tools

`notegraph.tools.note_tools(storage)` returns a `ToolSpec` for each of the five
note tools (`create_note`, `get_note`, `update_note`, `delete_note`,
`list_notes`), with its JSON input schema and handler; `ToolSpec.definition()`
gives the announced form. `register_tools(server, storage)` passes each of
them to `server.add_tool(definition, handler)`.

The handlers in `notegraph.handlers` take an arguments mapping and return a
`ToolResult` (its `to_dict()` gives the wire shape), or raise `ToolError`.
Ids are given as decimal strings. A created note defaults to type `text`;
a listing defaults to a limit of 100 and an offset of 0.

## What it does not do

The package has no server of its own that speaks a tool-calling protocol and
no command-line program: `register_tools` needs a server object supplied by
the caller. It ships no migration scripts and no runner that applies a
directory of them; the driver runs the scripts it is given.