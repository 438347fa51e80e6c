"""Connection URL parsing and building for the SQLite migration driver."""

from __future__ import annotations

from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from urllib.parse import parse_qs, quote, unquote, urlencode, urlsplit

from notegraph.errors import ConfigError

DEFAULT_MIGRATIONS_TABLE = "schema_migrations"
DEFAULT_TX_MODE = "DEFERRED"
TX_MODES = ("DEFERRED", "IMMEDIATE", "EXCLUSIVE")
SCHEMES = ("sqlite3", "ncruces-sqlite3")

_PATH_SAFE = "/$&+,:;=@"
_TRUE_WORDS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_WORDS = {"0", "f", "F", "FALSE", "false", "False"}

Option = Callable[[MutableMapping[str, str]], None]


@dataclass
class Config:
    """Settings for the migration driver."""

    database_name: str = ""
    migrations_table: str = DEFAULT_MIGRATIONS_TABLE
    no_tx_wrap: bool = False
    tx_mode: str = DEFAULT_TX_MODE

    def validate(self) -> None:
        """Raise ConfigError if any setting is unusable."""
        if not self.database_name:
            raise ConfigError("database_name", self.database_name, "database name is required")
        if not self.migrations_table:
            raise ConfigError(
                "migrations_table", self.migrations_table, "migrations table name is required"
            )
        if self.tx_mode not in TX_MODES:
            raise ConfigError(
                "tx_mode", self.tx_mode, f"invalid transaction mode: {self.tx_mode}"
            )


def default_config() -> Config:
    """Return a configuration holding the default settings."""
    return Config()


def _parse_bool(raw: str) -> bool:
    if raw in _TRUE_WORDS:
        return True
    if raw in _FALSE_WORDS:
        return False
    raise ValueError(f'parsing "{raw}": invalid syntax')


def parse_config(rawurl: str) -> Config:
    """Parse a sqlite3:// URL into a Config."""
    try:
        parts = urlsplit(rawurl)
    except ValueError as exc:
        raise ConfigError("url", rawurl, f"invalid URL: {exc}") from exc

    if parts.scheme not in SCHEMES:
        raise ConfigError("scheme", parts.scheme, f"invalid sqlite3 scheme: {parts.scheme}")

    database_name = unquote(parts.netloc) + unquote(parts.path)
    if not database_name:
        raise ConfigError("database_name", "", "empty database path")

    config = Config(database_name=database_name)
    if not parts.query:
        return config

    if ";" in parts.query:
        raise ConfigError(
            "query", parts.query, "invalid query parameters: invalid semicolon separator in query"
        )
    values = {key: found[0] for key, found in parse_qs(parts.query, keep_blank_values=True).items()}

    table = values.get("x-migrations-table", "")
    if table:
        config.migrations_table = table

    no_tx_wrap = values.get("x-no-tx-wrap", "")
    if no_tx_wrap:
        try:
            config.no_tx_wrap = _parse_bool(no_tx_wrap)
        except ValueError as exc:
            raise ConfigError(
                "x-no-tx-wrap", no_tx_wrap, f"invalid x-no-tx-wrap value: {exc}"
            ) from exc

    tx_mode = values.get("x-tx-mode", "")
    if tx_mode:
        if tx_mode not in TX_MODES:
            raise ConfigError("x-tx-mode", tx_mode, f"invalid transaction mode: {tx_mode}")
        config.tx_mode = tx_mode

    return config


def build_url(db_path: str, *args: Option) -> str:
    """Build a sqlite3:// URL for a database path; each extra argument is an option."""
    params: dict[str, str] = {}
    for option in args:
        option(params)
    path = quote(db_path, safe=_PATH_SAFE)
    url = "sqlite3:"
    if path:
        url += "//" + path
    if params:
        url += "?" + urlencode(sorted(params.items()))
    return url


def with_migrations_table(table: str) -> Option:
    """Option that sets the migrations table name."""

    def apply(params: MutableMapping[str, str]) -> None:
        params["x-migrations-table"] = table

    return apply


def with_no_tx_wrap() -> Option:
    """Option that disables wrapping migrations in a transaction."""

    def apply(params: MutableMapping[str, str]) -> None:
        params["x-no-tx-wrap"] = "true"

    return apply


def with_tx_mode(mode: str) -> Option:
    """Option that sets the transaction mode."""

    def apply(params: MutableMapping[str, str]) -> None:
        params["x-tx-mode"] = mode.upper()

    return apply