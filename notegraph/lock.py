"""Advisory locking for migrations, held in a SQLite table."""

from __future__ import annotations

import sqlite3
import time

from notegraph.config import Config
from notegraph.errors import DatabaseError, LockTimeoutError

DEFAULT_LOCK_TIMEOUT = 15.0
POLL_INTERVAL = 0.1


class LockManager:
    """Acquires and releases the migration lock stored in ``<table>_lock``."""

    def __init__(self, connection: sqlite3.Connection, config: Config) -> None:
        self.connection = connection
        self.config = config
        self.poll_interval = POLL_INTERVAL

    @property
    def table(self) -> str:
        return f"{self.config.migrations_table}_lock"

    def acquire(self, timeout: float = DEFAULT_LOCK_TIMEOUT) -> None:
        """Take the lock, retrying until ``timeout`` seconds have passed."""
        self._create_lock_table()
        deadline = time.monotonic() + timeout
        while True:
            if self._try_acquire():
                return
            if time.monotonic() >= deadline:
                raise LockTimeoutError()
            time.sleep(self.poll_interval)

    def release(self) -> None:
        """Release the lock; a missing lock table counts as released."""
        conn = self.connection
        try:
            row = conn.execute(
                "SELECT EXISTS (SELECT 1 FROM sqlite_master WHERE type='table' AND name=?)",
                (self.table,),
            ).fetchone()
        except sqlite3.Error as exc:
            raise DatabaseError("check lock table existence", str(exc)) from exc
        if not row[0]:
            return
        try:
            conn.execute(f"DELETE FROM {self.table} WHERE id = 1")
            conn.commit()
        except sqlite3.Error as exc:
            if "no such table" in str(exc):
                return
            raise DatabaseError("release lock", str(exc)) from exc

    def is_locked(self) -> bool:
        """Report whether the lock is currently held."""
        try:
            row = self.connection.execute(
                f"SELECT locked FROM {self.table} WHERE id = 1"
            ).fetchone()
        except sqlite3.Error as exc:
            raise DatabaseError("check lock status", str(exc)) from exc
        return bool(row[0]) if row is not None else False

    def force_release(self) -> None:
        """Clear every lock row, whoever holds it."""
        try:
            self.connection.execute(f"DELETE FROM {self.table}")
            self.connection.commit()
        except sqlite3.Error as exc:
            raise DatabaseError("force release lock", str(exc)) from exc

    def _create_lock_table(self) -> None:
        try:
            self.connection.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    locked BOOLEAN NOT NULL DEFAULT FALSE,
                    owner TEXT,
                    acquired_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    CHECK (id = 1)
                )"""
            )
            self.connection.commit()
        except sqlite3.Error as exc:
            raise DatabaseError("create lock table", str(exc)) from exc

    def _try_acquire(self) -> bool:
        conn = self.connection
        try:
            if not conn.in_transaction:
                conn.execute("BEGIN")
            conn.execute(
                f"""
                INSERT OR IGNORE INTO {self.table} (id, locked, owner, acquired_at)
                VALUES (1, FALSE, '', CURRENT_TIMESTAMP)"""
            )
            cursor = conn.execute(
                f"""
                UPDATE {self.table}
                SET locked = TRUE, owner = 'migration', acquired_at = CURRENT_TIMESTAMP
                WHERE id = 1 AND locked = FALSE"""
            )
            if cursor.rowcount == 0:
                conn.rollback()
                return False
            conn.commit()
            return True
        except sqlite3.Error as exc:
            if conn.in_transaction:
                conn.rollback()
            raise DatabaseError("acquire lock", str(exc)) from exc