"""User and credential models."""

from dataclasses import dataclass, field
from datetime import datetime

from .image import to_utc


@dataclass
class Credentials:
    """Login input. Only ever held in memory for the duration of a request."""

    username: str
    password: str = field(repr=False)


@dataclass
class User:
    """A registered account as stored in the ``users`` table."""

    username: str
    password_hash: str = field(repr=False)
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: tuple) -> "User":
        created_at = row[2]
        return cls(
            username=row[0],
            password_hash=row[1],
            created_at=to_utc(created_at) if created_at else None,
        )
