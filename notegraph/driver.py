"""SQLite migration driver: runs migration scripts and records schema versions."""

from __future__ import annotations

import sqlite3
from typing import IO, Union

from notegraph.config import Config, Option, build_url, default_config, parse_config
from notegraph.errors import DatabaseClosedError, DatabaseError
from notegraph.lock import LockManager

MigrationSource = Union[str, bytes, IO[str], IO[bytes]]


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _initialize_database(connection: sqlite3.Connection, config: Config) -> None:
    """Create the migrations table, the lock table and the lock row."""
    table = config.migrations_table
    steps = (
        (
            "create migrations table",
            f"""
            CREATE TABLE IF NOT EXISTS {table} (
                version INTEGER PRIMARY KEY,
                dirty BOOLEAN NOT NULL DEFAULT FALSE,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )""",
        ),
        (
            "create lock table",
            f"""
            CREATE TABLE IF NOT EXISTS {table}_lock (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                locked BOOLEAN NOT NULL DEFAULT FALSE,
                owner TEXT,
                acquired_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                CHECK (id = 1)
            )""",
        ),
        (
            "initialize lock row",
            f"""
            INSERT OR IGNORE INTO {table}_lock (id, locked, owner, acquired_at)
            VALUES (1, FALSE, '', CURRENT_TIMESTAMP)""",
        ),
    )
    for operation, statement in steps:
        try:
            connection.execute(statement)
            connection.commit()
        except sqlite3.Error as exc:
            raise DatabaseError(operation, str(exc)) from exc


class Driver:
    """Applies migrations to a SQLite database and tracks the applied version."""

    def __init__(
        self,
        connection: sqlite3.Connection | None = None,
        config: Config | None = None,
    ) -> None:
        self.connection = connection
        self.config = config if config is not None else default_config()
        self._locks = LockManager(connection, self.config) if connection is not None else None

    def __enter__(self) -> Driver:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(self, url: str) -> Driver:
        """Open the database named by a sqlite3:// URL and return a driver for it."""
        config = parse_config(url)
        config.validate()
        try:
            connection = sqlite3.connect(
                config.database_name, isolation_level=None, check_same_thread=False
            )
        except sqlite3.Error as exc:
            raise DatabaseError("open database", str(exc)) from exc
        try:
            try:
                connection.execute("SELECT 1").fetchone()
            except sqlite3.Error as exc:
                raise DatabaseError("ping database", str(exc)) from exc
            _initialize_database(connection, config)
        except Exception:
            connection.close()
            raise
        return Driver(connection, config)

    def close(self) -> None:
        """Close the connection; closing twice is harmless."""
        if self.connection is None:
            return
        connection, self.connection = self.connection, None
        self._locks = None
        connection.close()

    def _require_connection(self) -> sqlite3.Connection:
        if self.connection is None:
            raise DatabaseClosedError()
        return self.connection

    def lock(self) -> None:
        """Acquire the migration lock."""
        self._require_connection()
        assert self._locks is not None
        self._locks.acquire()

    def unlock(self) -> None:
        """Release the migration lock."""
        self._require_connection()
        assert self._locks is not None
        self._locks.release()

    def run(self, migration: MigrationSource) -> None:
        """Execute a migration script given as text, bytes or a readable file."""
        connection = self._require_connection()
        if hasattr(migration, "read"):
            try:
                content = migration.read()
            except OSError as exc:
                raise DatabaseError("read migration", str(exc)) from exc
        else:
            content = migration
        if isinstance(content, (bytes, bytearray)):
            content = bytes(content).decode("utf-8")
        script = content.strip()
        if not script:
            return
        if not self.config.no_tx_wrap:
            script = f"BEGIN {self.config.tx_mode};\n{script}\n;\nCOMMIT;"
        try:
            connection.executescript(script)
        except sqlite3.Error as exc:
            if connection.in_transaction:
                connection.rollback()
            raise DatabaseError("execute migration", str(exc)) from exc

    def set_version(self, version: int, dirty: bool) -> None:
        """Record a version; a clean version replaces every earlier record."""
        connection = self._require_connection()
        table = self.config.migrations_table
        insert = f"INSERT INTO {table} (version, dirty) VALUES (?, ?)"
        try:
            if dirty:
                connection.execute(insert, (version, True))
            else:
                if not connection.in_transaction:
                    connection.execute("BEGIN")
                connection.execute(f"DELETE FROM {table}")
                connection.execute(insert, (version, False))
            connection.commit()
        except sqlite3.Error as exc:
            if connection.in_transaction:
                connection.rollback()
            raise DatabaseError("set version", str(exc)) from exc

    def version(self) -> tuple[int, bool]:
        """Return the highest recorded version and its dirty flag, or (-1, False)."""
        connection = self._require_connection()
        query = (
            f"SELECT version, dirty FROM {self.config.migrations_table} "
            "ORDER BY version DESC LIMIT 1"
        )
        try:
            row = connection.execute(query).fetchone()
        except sqlite3.Error as exc:
            if "no such table" in str(exc):
                return -1, False
            raise DatabaseError("get version", str(exc)) from exc
        if row is None:
            return -1, False
        return int(row[0]), bool(row[1])

    def drop(self) -> None:
        """Drop every user table in the database."""
        connection = self._require_connection()
        try:
            tables = [
                name
                for (name,) in connection.execute(
                    "SELECT name FROM sqlite_master "
                    "WHERE type='table' AND name NOT LIKE 'sqlite_%'"
                ).fetchall()
            ]
        except sqlite3.Error as exc:
            raise DatabaseError("get table list", str(exc)) from exc
        for table in tables:
            try:
                connection.execute(f"DROP TABLE IF EXISTS {_quote_identifier(table)}")
                connection.commit()
            except sqlite3.Error as exc:
                if "no such table" in str(exc):
                    continue
                raise DatabaseError(f"drop table {table}", str(exc)) from exc

    def with_instance(self, instance: object, config: Config | None) -> Driver:
        """Wrap an already open connection, preparing its migration tables."""
        if not isinstance(instance, sqlite3.Connection):
            raise TypeError(
                f"expected sqlite3.Connection instance, got {type(instance).__name__}"
            )
        driver_config = default_config()
        if config is not None and config.migrations_table:
            driver_config.migrations_table = config.migrations_table
        _initialize_database(instance, driver_config)
        return Driver(instance, driver_config)


def new_migrator(db_path: str, *args: Option) -> Driver:
    """Open a driver for a database path; extra arguments are URL options."""
    return Driver().open(build_url(db_path, *args))