"""Atomic removal of a user together with its deletion log entry."""
from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from .database import ConnectionFactory, utc_timestamp
from .errors import CommitError, QueryError, TransactionError, WriteError
from .models import DeletionResult, User

logger = logging.getLogger("userstore.deletion")


class TransactionalDeleteWorkflow:
    """Run ``BEGIN`` → fetch → log insert → delete → ``COMMIT`` on one connection.

    Either the user row disappears and exactly one ``user_deletions_log`` row
    is written, or nothing changes. The first failing step rolls the
    transaction back and its error propagates to the caller. A user that does
    not exist is not an error: the transaction is rolled back and ``None`` is
    returned.

    The log row is inserted before the user row is deleted so that a failed
    delete also discards the log row.
    """

    def __init__(self, factory: ConnectionFactory) -> None:
        self._factory = factory

    def run(self, user_id: int) -> Optional[DeletionResult]:
        with self._factory.connection() as conn:
            self._begin(conn, user_id)
            try:
                user = self._fetch(conn, user_id)
                if user is None:
                    self._rollback(conn, user_id)
                    logger.info("User %s not found; nothing deleted", user_id)
                    return None
                deleted_at = utc_timestamp()
                self._insert_log(conn, user, deleted_at)
                self._delete(conn, user)
            except Exception:
                self._rollback(conn, user_id)
                raise
            self._commit(conn, user_id, deleted_at)

        logger.info("Deleted user %s <%s> at %s", user.id, user.email, deleted_at)
        return DeletionResult(user=user, deleted_at=deleted_at)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def _begin(self, conn: sqlite3.Connection, user_id: int) -> None:
        # IMMEDIATE takes the write lock up front so the fetched row cannot
        # change before it is deleted.
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as exc:
            raise TransactionError(
                f"Could not start the deletion transaction for user {user_id}"
            ) from exc

    def _fetch(self, conn: sqlite3.Connection, user_id: int) -> Optional[User]:
        try:
            row = conn.execute(
                "SELECT id, email, name, created_at FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
        except sqlite3.Error as exc:
            raise QueryError(f"Failed to load user {user_id} for deletion") from exc
        if row is None:
            return None
        return User.from_row(row)

    def _insert_log(self, conn: sqlite3.Connection, user: User, deleted_at: str) -> None:
        try:
            conn.execute(
                "INSERT INTO user_deletions_log (user_id, email, deleted_at) VALUES (?, ?, ?)",
                (user.id, user.email, deleted_at),
            )
        except sqlite3.Error as exc:
            raise WriteError(f"Failed to record the deletion of user {user.id}") from exc

    def _delete(self, conn: sqlite3.Connection, user: User) -> None:
        try:
            conn.execute("DELETE FROM users WHERE id = ?", (user.id,))
        except sqlite3.Error as exc:
            raise WriteError(f"Failed to delete user {user.id}") from exc

    def _commit(self, conn: sqlite3.Connection, user_id: int, deleted_at: str) -> None:
        # No rollback here: whether the commit reached disk is unknown, and
        # closing the connection discards a transaction that is still open.
        try:
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            logger.error(
                "Commit failed while deleting user %s; outcome must be reconciled", user_id
            )
            raise CommitError(
                f"Commit failed while deleting user {user_id}; the deletion may or may not have been applied",
                user_id=user_id,
                deleted_at=deleted_at,
            ) from exc

    def _rollback(self, conn: sqlite3.Connection, user_id: int) -> None:
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error:
            logger.warning("Rollback failed for deletion of user %s", user_id, exc_info=True)


__all__ = ["TransactionalDeleteWorkflow"]
