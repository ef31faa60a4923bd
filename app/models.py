"""In-memory records held by the credential store and the todo repository."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class User:
    """A registered account. Never handed out without copying."""

    id: int
    name: str
    email: str
    hashed_password: str
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class Todo:
    """A todo item owned by exactly one user."""

    id: int
    owner_id: int
    text: str | None
    completed: bool | None = False
    created_at: datetime = field(default_factory=_utcnow)
