"""Shared fixtures for the user store tests."""
from __future__ import annotations

import sqlite3
import sys
from pathlib import Path
from typing import List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from userstore.database import ConnectionFactory
from userstore.repository import UserRepository


class FailingConnection:
    """Proxy that raises ``OperationalError`` for statements starting with ``fail_on``."""

    def __init__(self, conn: sqlite3.Connection, fail_on: str) -> None:
        self._conn = conn
        self._fail_on = fail_on.upper()
        self.statements: List[str] = []

    def execute(self, sql: str, params=()):
        keyword = sql.lstrip().split(None, 1)[0].upper()
        self.statements.append(keyword)
        if sql.lstrip().upper().startswith(self._fail_on):
            raise sqlite3.OperationalError(f"injected failure on {self._fail_on}")
        return self._conn.execute(sql, params)

    def executescript(self, script: str):
        return self._conn.executescript(script)

    def close(self) -> None:
        self._conn.close()


class CountingFactory(ConnectionFactory):
    """Connection factory that counts opens and closes and can inject failures."""

    def __init__(self, path: Path, *, timeout: float = 5.0, fail_on: Optional[str] = None) -> None:
        super().__init__(path, timeout=timeout)
        self.fail_on = fail_on
        self.opened = 0
        self.closed = 0
        self.connections: list = []

    def open(self):
        conn = super().open()
        self.opened += 1
        if self.fail_on:
            conn = FailingConnection(conn, self.fail_on)
        self.connections.append(conn)
        return conn

    def close(self, conn) -> None:
        self.closed += 1
        super().close(conn)


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "app.db"
    ConnectionFactory(path).initialize()
    return path


@pytest.fixture()
def factory(db_path: Path) -> CountingFactory:
    return CountingFactory(db_path)


@pytest.fixture()
def repository(factory: CountingFactory) -> UserRepository:
    return UserRepository(factory)


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"
