"""Errors raised by the migration driver and its lock manager."""

from __future__ import annotations

from datetime import timedelta


class MigrationDriverError(Exception):
    """Base class for all migration driver errors."""

    default_message = "migration driver error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class LockTimeoutError(MigrationDriverError):
    """The lock could not be acquired in time."""

    default_message = "lock acquisition timeout"


class LockHeldError(MigrationDriverError):
    """The lock is already held."""

    default_message = "lock already held"


class InvalidConfigError(MigrationDriverError):
    """The configuration is invalid."""

    default_message = "invalid configuration"


class DatabaseClosedError(MigrationDriverError):
    """An operation was attempted on a closed database."""

    default_message = "database connection is closed"


class InvalidMigrationError(MigrationDriverError):
    """The migration content is invalid."""

    default_message = "invalid migration content"


class TransactionFailedError(MigrationDriverError):
    """A transaction failed."""

    default_message = "transaction failed"


def _format_duration(duration: timedelta) -> str:
    micros = (duration.days * 86_400 + duration.seconds) * 1_000_000 + duration.microseconds
    if micros == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    if micros < 1_000:
        return f"{sign}{micros}µs"
    if micros < 1_000_000:
        whole, frac = divmod(micros, 1_000)
        tail = f".{frac:03d}".rstrip("0").rstrip(".")
        return f"{sign}{whole}{tail}ms"
    total_seconds, frac = divmod(micros, 1_000_000)
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    tail = f".{frac:06d}".rstrip("0").rstrip(".")
    text = f"{seconds}{tail}s"
    if hours:
        text = f"{hours}h{minutes}m{text}"
    elif minutes:
        text = f"{minutes}m{text}"
    return sign + text


class LockError(MigrationDriverError):
    """A lock operation failed."""

    def __init__(self, operation: str, owner: str, duration: timedelta) -> None:
        self.operation = operation
        self.owner = owner
        self.duration = duration
        super().__init__(
            f"lock {operation} failed: owner={owner}, duration={_format_duration(duration)}"
        )


class ConfigError(InvalidConfigError):
    """A configuration field holds an unusable value."""

    def __init__(self, field: str, value: str, message: str) -> None:
        self.field = field
        self.value = value
        self.message = message
        super().__init__(
            f"configuration error: field={field}, value={value}, message={message}"
        )


class MigrationError(MigrationDriverError):
    """A migration could not be applied."""

    def __init__(self, version: int, dirty: bool, message: str) -> None:
        self.version = version
        self.dirty = dirty
        self.message = message
        super().__init__(
            f"migration error: version={version}, "
            f"dirty={'true' if dirty else 'false'}, message={message}"
        )


class DatabaseError(MigrationDriverError):
    """A database operation failed."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.message = message
        super().__init__(f"database error: operation={operation}, message={message}")