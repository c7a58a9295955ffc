"""SQLite connection handling and schema provisioning for the user store."""
from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from .errors import SchemaError, StoreConnectionError

logger = logging.getLogger("userstore.database")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_deletions_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    email TEXT NOT NULL,
    deleted_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_user_deletions_log_user_id ON user_deletions_log(user_id);
"""


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "app.db").resolve(strict=False)


def utc_timestamp() -> str:
    """Return the current instant as an ISO-8601 UTC string with millisecond precision."""

    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create the ``users`` and ``user_deletions_log`` tables if they are missing."""

    try:
        conn.executescript(SCHEMA_SQL)
    except sqlite3.Error as exc:
        raise SchemaError(f"Failed to create the user store schema: {exc}") from exc
    logger.info("Tables users and user_deletions_log verified")


class ConnectionFactory:
    """Opens a fresh SQLite connection for every unit of work.

    Connections are never shared or pooled. They run in autocommit mode so
    that transactions are only ever opened by an explicit ``BEGIN``.
    """

    def __init__(self, path: Path, *, timeout: float = 5.0) -> None:
        self._path = Path(path)
        self._timeout = timeout

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> sqlite3.Connection:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                self._path,
                timeout=self._timeout,
                isolation_level=None,
                check_same_thread=False,
            )
        except (OSError, sqlite3.Error) as exc:
            logger.error("Could not open SQLite database at %s: %s", self._path, exc)
            raise StoreConnectionError(f"Unable to open database at {self._path}") from exc
        conn.row_factory = sqlite3.Row
        logger.debug("Opened SQLite connection to %s", self._path)
        return conn

    def close(self, conn: sqlite3.Connection) -> None:
        conn.close()
        logger.debug("Closed SQLite connection to %s", self._path)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a new connection and close it on every exit path."""

        conn = self.open()
        try:
            yield conn
        finally:
            self.close(conn)

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self.connection() as conn:
            ensure_schema(conn)


__all__ = [
    "ConnectionFactory",
    "SCHEMA_SQL",
    "ensure_schema",
    "resolve_database_path",
    "utc_timestamp",
]
