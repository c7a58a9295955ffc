"""Domain models for users and their deletion history."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping


@dataclass(frozen=True)
class User:
    """Represents a user record stored in the ``users`` table."""

    id: int
    email: str
    name: str
    created_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "User":
        return cls(
            id=int(row["id"]),
            email=str(row["email"]),
            name=str(row["name"]),
            created_at=str(row["created_at"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DeletionLogEntry:
    """Append-only audit row written when a user is deleted."""

    id: int
    user_id: int
    email: str
    deleted_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "DeletionLogEntry":
        return cls(
            id=int(row["id"]),
            user_id=int(row["user_id"]),
            email=str(row["email"]),
            deleted_at=str(row["deleted_at"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DeletionResult:
    """Outcome of a committed deletion: the removed user and when it happened."""

    user: User
    deleted_at: str
    deleted: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deleted": self.deleted,
            "user": self.user.to_dict(),
            "deleted_at": self.deleted_at,
        }


__all__ = ["User", "DeletionLogEntry", "DeletionResult"]
