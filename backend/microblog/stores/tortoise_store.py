"""
Relational store backend on Tortoise ORM.

The throttled insert runs in a transaction that locks the author's user row
(SELECT ... FOR UPDATE where the database supports it, e.g. PostgreSQL), so
two app instances cannot both admit a post inside one cooldown window. A
per-author asyncio lock additionally serializes requests inside this process,
which is what protects SQLite deployments.
"""
import asyncio
import weakref
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional

from tortoise.exceptions import BaseORMException, IntegrityError
from tortoise.transactions import in_transaction

from microblog.core.errors import AuthorThrottled, ConflictError, StoreUnavailable, UnknownAuthor
from microblog.models.post import Post
from microblog.models.user import User
from microblog.stores.base import NewPost, PostStore, StoredPost, UserBackend, UserRow, is_throttled


@contextmanager
def _store_errors(operation: str):
    try:
        yield
    except (BaseORMException, OSError) as e:
        raise StoreUnavailable(f"{operation} failed: {e}") from e


def _to_stored(p: Post) -> StoredPost:
    return StoredPost(id=p.id, author=p.author_id, content=p.content, timestamp=p.created_at, image=p.image)


class TortoiseStore(UserBackend, PostStore):
    def __init__(self):
        # An entry lives only while some request holds or waits on the lock
        self._author_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, author: str) -> asyncio.Lock:
        lock = self._author_locks.get(author)
        if lock is None:
            lock = asyncio.Lock()
            self._author_locks[author] = lock
        return lock

    # -------- users --------
    async def get_user(self, username: str) -> Optional[UserRow]:
        """
        Look up a user by exact (case-sensitive) username.

        Args:
            username: Username to look up

        Returns:
            The user row including its password hash, or None if absent

        Raises:
            StoreUnavailable: database error
        """
        with _store_errors("get_user"):
            u = await User.get_or_none(username=username)
        if u is None:
            return None
        return UserRow(username=u.username, password_hash=u.password_hash, created_at=u.created_at)

    async def insert_user(self, username: str, password_hash: str, created_at: datetime) -> UserRow:
        """
        Insert a new user row.

        Raises:
            ConflictError: the unique index already holds this username
            StoreUnavailable: any other database error
        """
        try:
            with _store_errors("insert_user"):
                u = await User.create(username=username, password_hash=password_hash, created_at=created_at)
        except StoreUnavailable as e:
            # Lost a signup race against the unique index
            if isinstance(e.__cause__, IntegrityError):
                raise ConflictError("user exists") from e.__cause__
            raise
        return UserRow(username=u.username, password_hash=u.password_hash, created_at=u.created_at)

    # -------- posts --------
    async def append(self, post: NewPost) -> StoredPost:
        """Insert a post without any cooldown check."""
        return await self.append_unless_throttled(post, None)

    async def append_unless_throttled(self, post: NewPost, cooldown: Optional[timedelta]) -> StoredPost:
        """
        Insert a post unless its author posted less than `cooldown` ago.

        The author check, the last-post read and the insert share one
        transaction and one per-author lock.

        Args:
            post: Post to insert; a missing timestamp defaults to now (UTC)
            cooldown: Minimum gap since the author's previous post, or None
                to skip the check

        Returns:
            The stored post with its assigned id

        Raises:
            UnknownAuthor: no user row for post.author
            AuthorThrottled: previous post is inside the cooldown
            StoreUnavailable: database error
        """
        ts = post.timestamp or datetime.now(timezone.utc)
        lock = self._lock_for(post.author)
        async with lock:
            with _store_errors("append"):
                async with in_transaction() as conn:
                    author = await User.filter(username=post.author).select_for_update().using_db(conn).first()
                    if author is None:
                        raise UnknownAuthor(post.author)
                    if cooldown is not None:
                        last = await self._last_post_time(post.author, conn)
                        if is_throttled(last, ts, cooldown):
                            raise AuthorThrottled(last)
                    row = await Post.create(
                        author_id=post.author,
                        content=post.content,
                        created_at=ts,
                        image=post.image,
                        using_db=conn,
                    )
        return _to_stored(row)

    async def list_newest_first(self) -> list[StoredPost]:
        """
        All posts, newest first; equal timestamps put the higher id first.

        Raises:
            StoreUnavailable: database error
        """
        with _store_errors("list_posts"):
            rows = await Post.all().order_by("-created_at", "-id")
        return [_to_stored(p) for p in rows]

    async def last_post_time(self, author: str) -> Optional[datetime]:
        """Timestamp of the author's newest post, or None if they never posted."""
        with _store_errors("last_post_time"):
            return await self._last_post_time(author)

    async def _last_post_time(self, author: str, conn=None) -> Optional[datetime]:
        qs = Post.filter(author_id=author).order_by("-created_at", "-id")
        if conn is not None:
            qs = qs.using_db(conn)
        last = await qs.first()
        return last.created_at if last else None
