from datetime import timedelta

import pytest

from notegraph.errors import (
    ConfigError,
    DatabaseClosedError,
    DatabaseError,
    InvalidConfigError,
    InvalidMigrationError,
    LockError,
    LockHeldError,
    LockTimeoutError,
    MigrationDriverError,
    MigrationError,
    TransactionFailedError,
)


@pytest.mark.parametrize(
    "cls, message",
    [
        (LockTimeoutError, "lock acquisition timeout"),
        (LockHeldError, "lock already held"),
        (InvalidConfigError, "invalid configuration"),
        (DatabaseClosedError, "database connection is closed"),
        (InvalidMigrationError, "invalid migration content"),
        (TransactionFailedError, "transaction failed"),
    ],
)
def test_sentinel_default_messages(cls, message):
    err = cls()
    assert str(err) == message
    assert isinstance(err, MigrationDriverError)


def test_sentinel_custom_message():
    err = DatabaseClosedError("closed early")
    assert str(err) == "closed early"


def test_sentinels_are_distinct():
    timeout = LockTimeoutError()
    held = LockHeldError()
    assert not isinstance(timeout, LockHeldError)
    assert not isinstance(held, LockTimeoutError)
    assert str(timeout) == "lock acquisition timeout"
    assert str(held) == "lock already held"


def test_lock_error_message_and_fields():
    err = LockError("acquire", "migration", timedelta(seconds=15))
    assert err.operation == "acquire"
    assert err.owner == "migration"
    assert err.duration == timedelta(seconds=15)
    assert str(err) == "lock acquire failed: owner=migration, duration=15s"


def test_lock_error_sub_second_duration():
    err = LockError("release", "migration", timedelta(milliseconds=100))
    assert str(err).endswith("duration=100ms")


def test_config_error_is_invalid_config():
    err = ConfigError("tx_mode", "INVALID", "invalid transaction mode: INVALID")
    assert isinstance(err, InvalidConfigError)
    assert (err.field, err.value) == ("tx_mode", "INVALID")
    text = str(err)
    assert text.startswith("configuration error:")
    assert "INVALID" in text
    assert "invalid transaction mode: INVALID" in text


def test_migration_error():
    err = MigrationError(3, True, "boom")
    assert err.version == 3
    assert err.dirty is True
    assert "dirty=true" in str(err)
    assert str(err).startswith("migration error:")
    assert "boom" in str(err)


def test_database_error():
    err = DatabaseError("drop", "no such table")
    assert err.operation == "drop"
    assert err.message == "no such table"
    assert str(err).startswith("database error:")
    assert "no such table" in str(err)
    assert isinstance(err, MigrationDriverError)