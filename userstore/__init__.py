"""SQLite-backed user records with an audited, transactional delete."""

from __future__ import annotations

from typing import Any

from .database import ConnectionFactory, ensure_schema, resolve_database_path
from .errors import (
    CommitError,
    ConstraintError,
    QueryError,
    SchemaError,
    StoreConnectionError,
    TransactionError,
    UserStoreError,
    WriteError,
)
from .models import DeletionLogEntry, DeletionResult, User
from .repository import AsyncUserRepository, UserRepository


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the HTTP application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "AsyncUserRepository",
    "CommitError",
    "ConnectionFactory",
    "ConstraintError",
    "DeletionLogEntry",
    "DeletionResult",
    "QueryError",
    "SchemaError",
    "StoreConnectionError",
    "TransactionError",
    "User",
    "UserRepository",
    "UserStoreError",
    "WriteError",
    "create_app",
    "ensure_schema",
    "resolve_database_path",
]
