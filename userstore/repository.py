"""Create, read, update and delete operations for users."""
from __future__ import annotations

import logging
import sqlite3
from functools import partial
from typing import List, Optional

import anyio

from .database import ConnectionFactory, utc_timestamp
from .deletion import TransactionalDeleteWorkflow
from .errors import ConstraintError, QueryError, WriteError
from .models import DeletionLogEntry, DeletionResult, User

logger = logging.getLogger("userstore.repository")

_USER_COLUMNS = "id, email, name, created_at"


class UserRepository:
    """Persistence for the ``users`` table.

    Every call opens its own connection and closes it before returning or
    raising. Lookups that match nothing return ``None``; store failures are
    raised as :mod:`userstore.errors` exceptions.
    """

    def __init__(self, factory: ConnectionFactory) -> None:
        self._factory = factory
        self._delete_workflow = TransactionalDeleteWorkflow(factory)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def create(self, email: str, name: str) -> User:
        """Insert a new user. Duplicate emails raise :class:`ConstraintError`."""

        created_at = utc_timestamp()
        with self._factory.connection() as conn:
            try:
                cursor = conn.execute(
                    "INSERT INTO users (email, name, created_at) VALUES (?, ?, ?)",
                    (email, name, created_at),
                )
            except sqlite3.IntegrityError as exc:
                raise ConstraintError("A user with that email already exists") from exc
            except sqlite3.Error as exc:
                raise WriteError("Failed to create user") from exc
            user_id = int(cursor.lastrowid)

        logger.info("Created user %s <%s>", user_id, email)
        return User(id=user_id, email=email, name=name, created_at=created_at)

    def list_all(self) -> List[User]:
        with self._factory.connection() as conn:
            try:
                rows = conn.execute(
                    f"SELECT {_USER_COLUMNS} FROM users ORDER BY id ASC"
                ).fetchall()
            except sqlite3.Error as exc:
                raise QueryError("Failed to list users") from exc
        return [User.from_row(row) for row in rows]

    def get_by_id(self, user_id: int) -> Optional[User]:
        with self._factory.connection() as conn:
            return self._select_user(conn, user_id)

    def update(self, user_id: int, email: str, name: str) -> Optional[User]:
        """Overwrite ``email`` and ``name``; return ``None`` if the user does not exist."""

        with self._factory.connection() as conn:
            try:
                cursor = conn.execute(
                    "UPDATE users SET email = ?, name = ? WHERE id = ?",
                    (email, name, user_id),
                )
            except sqlite3.IntegrityError as exc:
                raise ConstraintError("A user with that email already exists") from exc
            except sqlite3.Error as exc:
                raise WriteError(f"Failed to update user {user_id}") from exc

            if cursor.rowcount == 0:
                return None

            # UPDATE does not hand back the row, so read created_at back explicitly.
            updated = self._select_user(conn, user_id)

        logger.info("Updated user %s", user_id)
        return updated

    def delete_with_log(self, user_id: int) -> Optional[DeletionResult]:
        """Delete the user and append a ``user_deletions_log`` row atomically."""

        return self._delete_workflow.run(user_id)

    # ------------------------------------------------------------------
    # Deletion log
    # ------------------------------------------------------------------
    def list_deletions(self, user_id: Optional[int] = None) -> List[DeletionLogEntry]:
        query = "SELECT id, user_id, email, deleted_at FROM user_deletions_log"
        params: tuple = ()
        if user_id is not None:
            query += " WHERE user_id = ?"
            params = (user_id,)
        query += " ORDER BY id ASC"

        with self._factory.connection() as conn:
            try:
                rows = conn.execute(query, params).fetchall()
            except sqlite3.Error as exc:
                raise QueryError("Failed to read the deletion log") from exc
        return [DeletionLogEntry.from_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _select_user(self, conn: sqlite3.Connection, user_id: int) -> Optional[User]:
        try:
            row = conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
        except sqlite3.Error as exc:
            raise QueryError(f"Failed to load user {user_id}") from exc
        if row is None:
            return None
        return User.from_row(row)


class AsyncUserRepository:
    """Runs :class:`UserRepository` calls on worker threads for async callers."""

    def __init__(self, repository: UserRepository) -> None:
        self._repository = repository

    async def create(self, email: str, name: str) -> User:
        return await anyio.to_thread.run_sync(partial(self._repository.create, email, name))

    async def list_all(self) -> List[User]:
        return await anyio.to_thread.run_sync(self._repository.list_all)

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return await anyio.to_thread.run_sync(self._repository.get_by_id, user_id)

    async def update(self, user_id: int, email: str, name: str) -> Optional[User]:
        return await anyio.to_thread.run_sync(
            partial(self._repository.update, user_id, email, name)
        )

    async def delete_with_log(self, user_id: int) -> Optional[DeletionResult]:
        return await anyio.to_thread.run_sync(self._repository.delete_with_log, user_id)

    async def list_deletions(self, user_id: Optional[int] = None) -> List[DeletionLogEntry]:
        return await anyio.to_thread.run_sync(self._repository.list_deletions, user_id)


__all__ = ["UserRepository", "AsyncUserRepository"]
