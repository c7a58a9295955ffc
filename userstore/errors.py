"""Exception hierarchy raised by the user store."""
from __future__ import annotations

from typing import Optional


class UserStoreError(Exception):
    """Base class for every failure surfaced by the store layer."""


class StoreConnectionError(UserStoreError):
    """Raised when the SQLite database cannot be opened or created."""


class SchemaError(UserStoreError):
    """Raised when the required tables could not be created."""


class QueryError(UserStoreError):
    """Raised when a read statement fails."""


class WriteError(UserStoreError):
    """Raised when an insert, update or delete statement fails."""


class ConstraintError(WriteError):
    """Raised when a write violates the unique email constraint."""


class TransactionError(UserStoreError):
    """Raised when a transaction could not be started."""


class CommitError(UserStoreError):
    """Raised when ``COMMIT`` fails after every step of a deletion succeeded.

    The caller cannot tell whether the deletion was persisted. ``user_id`` and
    ``deleted_at`` identify the attempt so that it can be reconciled against
    the users table and the deletion log before retrying.
    """

    def __init__(self, message: str, *, user_id: int, deleted_at: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_id = user_id
        self.deleted_at = deleted_at


__all__ = [
    "UserStoreError",
    "StoreConnectionError",
    "SchemaError",
    "QueryError",
    "WriteError",
    "ConstraintError",
    "TransactionError",
    "CommitError",
]
