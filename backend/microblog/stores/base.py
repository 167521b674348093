"""
Record abstractions the services are written against.

A backend implements both UserBackend and PostStore so that the post store can
check the author's user record inside the same critical section as the insert.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional


@dataclass(frozen=True)
class UserRow:
    """Stored user, including the hash. Only the credential store sees this."""
    username: str
    password_hash: str
    created_at: datetime


@dataclass(frozen=True)
class NewPost:
    author: str
    content: str
    timestamp: Optional[datetime] = None
    image: Optional[str] = None


@dataclass(frozen=True)
class StoredPost:
    id: int
    author: str
    content: str
    timestamp: datetime
    image: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "author": self.author,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "image": self.image,
        }


class UserBackend(ABC):
    @abstractmethod
    async def get_user(self, username: str) -> Optional[UserRow]:
        """Return the user row, or None if absent."""

    @abstractmethod
    async def insert_user(self, username: str, password_hash: str, created_at: datetime) -> UserRow:
        """
        Persist a new user.

        Raises ConflictError when the username is taken, StoreUnavailable on
        backend failure.
        """


class PostStore(ABC):
    @abstractmethod
    async def append(self, post: NewPost) -> StoredPost:
        """Persist a post unconditionally and return its stored form."""

    @abstractmethod
    async def append_unless_throttled(self, post: NewPost, cooldown: Optional[timedelta]) -> StoredPost:
        """
        Atomically insert the post unless its author posted within `cooldown`
        before post.timestamp.

        Raises:
            UnknownAuthor: the author has no user record
            AuthorThrottled: the author's last post is inside the cooldown
            StoreUnavailable: backend failure
        """

    @abstractmethod
    async def list_newest_first(self) -> list[StoredPost]:
        """All posts, timestamp descending, ties newest insert first."""

    @abstractmethod
    async def last_post_time(self, author: str) -> Optional[datetime]:
        """Timestamp of the author's most recent post, or None."""


def is_throttled(last: Optional[datetime], now: datetime, cooldown: Optional[timedelta]) -> bool:
    return cooldown is not None and last is not None and now - last < cooldown
