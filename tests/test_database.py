from __future__ import annotations

import re
import sqlite3
from pathlib import Path

import pytest

from userstore.database import ConnectionFactory, ensure_schema, resolve_database_path, utc_timestamp
from userstore.errors import SchemaError, StoreConnectionError


def _columns(conn: sqlite3.Connection, table: str) -> list[str]:
    return [row["name"] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()]


def test_initialize_creates_both_tables(tmp_path: Path) -> None:
    factory = ConnectionFactory(tmp_path / "nested" / "app.db")
    factory.initialize()

    assert factory.path.exists()
    with factory.connection() as conn:
        assert _columns(conn, "users") == ["id", "email", "name", "created_at"]
        assert _columns(conn, "user_deletions_log") == ["id", "user_id", "email", "deleted_at"]


def test_ensure_schema_is_idempotent(tmp_path: Path) -> None:
    factory = ConnectionFactory(tmp_path / "app.db")
    with factory.connection() as conn:
        ensure_schema(conn)
        conn.execute(
            "INSERT INTO users (email, name, created_at) VALUES (?, ?, ?)",
            ("keep@example.com", "Keep", utc_timestamp()),
        )
        ensure_schema(conn)
        count = conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
    assert count == 1


def test_ensure_schema_failure_raises_schema_error(tmp_path: Path) -> None:
    factory = ConnectionFactory(tmp_path / "app.db")
    with factory.connection() as conn:
        conn.execute("CREATE VIEW user_deletions_log AS SELECT 1 AS user_id")
        with pytest.raises(SchemaError):
            ensure_schema(conn)


def test_each_open_returns_an_independent_connection(tmp_path: Path) -> None:
    factory = ConnectionFactory(tmp_path / "app.db")
    first = factory.open()
    second = factory.open()
    try:
        assert first is not second
        assert first.isolation_level is None
    finally:
        factory.close(first)
        factory.close(second)


def test_connection_is_closed_when_block_raises(tmp_path: Path) -> None:
    factory = ConnectionFactory(tmp_path / "app.db")
    with pytest.raises(RuntimeError):
        with factory.connection() as conn:
            raise RuntimeError("boom")
    with pytest.raises(sqlite3.ProgrammingError):
        conn.execute("SELECT 1")


def test_unreachable_store_raises_connection_error(tmp_path: Path) -> None:
    # A directory cannot be opened as a database file.
    factory = ConnectionFactory(tmp_path)
    with pytest.raises(StoreConnectionError):
        factory.open()


def test_resolve_database_path_prefers_explicit_value(tmp_path: Path) -> None:
    explicit = tmp_path / "custom.db"
    assert resolve_database_path(str(explicit)) == explicit.resolve()
    assert resolve_database_path(None).name == "app.db"


def test_utc_timestamp_format() -> None:
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", utc_timestamp())
