"""
Flat-file store backend: users.json and posts.json under one data directory.

Files are rewritten whole through a temp file and os.replace, so readers never
see a half-written file. All writes go through one asyncio lock; this backend
is meant for a single server process.
"""
import asyncio
import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

from microblog.core.errors import AuthorThrottled, ConflictError, StoreUnavailable, UnknownAuthor
from microblog.stores.base import NewPost, PostStore, StoredPost, UserBackend, UserRow, is_throttled


class JsonFileStore(UserBackend, PostStore):
    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)
        self._users_path = self.data_dir / "users.json"
        self._posts_path = self.data_dir / "posts.json"
        self._lock = asyncio.Lock()

    # -------- file helpers --------
    def _read(self, path: Path, default: Any) -> Any:
        if not path.exists():
            return default
        return json.loads(path.read_text(encoding="utf-8"))

    def _write(self, path: Path, data: Any) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, path)

    async def _load(self, path: Path, default: Any) -> Any:
        try:
            return await asyncio.to_thread(self._read, path, default)
        except (OSError, ValueError) as e:
            raise StoreUnavailable(f"reading {path.name} failed: {e}") from e

    async def _save(self, path: Path, data: Any) -> None:
        try:
            await asyncio.to_thread(self._write, path, data)
        except (OSError, TypeError) as e:
            raise StoreUnavailable(f"writing {path.name} failed: {e}") from e

    async def _users(self) -> dict:
        data = await self._load(self._users_path, {"users": {}})
        if not isinstance(data, dict) or not isinstance(data.get("users"), dict):
            raise StoreUnavailable(f"corrupt {self._users_path.name}")
        return data["users"]

    async def _posts(self) -> dict:
        data = await self._load(self._posts_path, {"next_id": 1, "posts": []})
        if not isinstance(data, dict) or not isinstance(data.get("posts"), list) or "next_id" not in data:
            raise StoreUnavailable(f"corrupt {self._posts_path.name}")
        return data

    @staticmethod
    def _post_from_json(raw: dict) -> StoredPost:
        try:
            return StoredPost(
                id=int(raw["id"]),
                author=raw["author"],
                content=raw["content"],
                timestamp=datetime.fromisoformat(raw["timestamp"]),
                image=raw.get("image"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise StoreUnavailable(f"corrupt post record: {e}") from e

    # -------- users --------
    async def get_user(self, username: str) -> Optional[UserRow]:
        """
        Look up a user by exact (case-sensitive) username.

        Args:
            username: Username to look up

        Returns:
            The user row including its password hash, or None if absent

        Raises:
            StoreUnavailable: unreadable or corrupt users.json
        """
        raw =(await self._users()).get(username)
        if raw is None:
            return None
        try:
            return UserRow(
                username=username,
                password_hash=raw["password_hash"],
                created_at=datetime.fromisoformat(raw["created_at"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise StoreUnavailable(f"corrupt user record: {e}") from e

    async def insert_user(self, username: str, password_hash: str, created_at: datetime) -> UserRow:
        """
        Add a user to users.json.

        Raises:
            ConflictError: username already present
            StoreUnavailable: read or write failure
        """
        async with self._lock:
            users = await self._users()
            if username in users:
                raise ConflictError("user exists")
            users[username] = {"password_hash": password_hash, "created_at": created_at.isoformat()}
            await self._save(self._users_path, {"users": users})
        return UserRow(username=username, password_hash=password_hash, created_at=created_at)

    # -------- posts --------
    async def append(self, post: NewPost) -> StoredPost:
        return await self.append_unless_throttled(post, None)

    async def append_unless_throttled(self, post: NewPost, cooldown: Optional[timedelta]) -> StoredPost:
        """
        Insert a post unless its author posted less than `cooldown` ago.

        Reading both files, the checks and the rewrite of posts.json all
        happen under the store lock.

        Args:
            post: Post to insert; a missing timestamp defaults to now (UTC)
            cooldown: Minimum gap since the author's previous post, or None
                to skip the check

        Returns:
            The stored post with the next id

        Raises:
            UnknownAuthor: post.author is not in users.json
            AuthorThrottled: previous post is inside the cooldown
            StoreUnavailable: read or write failure, or corrupt files
        """
        ts =post.timestamp or datetime.now(timezone.utc)
        async with self._lock:
            if post.author not in await self._users():
                raise UnknownAuthor(post.author)
            data = await self._posts()
            if cooldown is not None:
                last = self._latest(data["posts"], post.author)
                if is_throttled(last, ts, cooldown):
                    raise AuthorThrottled(last)
            stored = StoredPost(
                id=data["next_id"],
                author=post.author,
                content=post.content,
                timestamp=ts,
                image=post.image,
            )
            data["posts"].append(stored.to_dict())
            data["next_id"] += 1
            await self._save(self._posts_path, data)
        return stored

    async def list_newest_first(self) -> list[StoredPost]:
        """All posts re-read from disk, newest first, higher id first on ties."""
        posts =[self._post_from_json(p) for p in (await self._posts())["posts"]]
        posts.sort(key=lambda p: (p.timestamp, p.id), reverse=True)
        return posts

    async def last_post_time(self, author: str) -> Optional[datetime]:
        return self._latest((await self._posts())["posts"], author)

    def _latest(self, raw_posts: list[dict], author: str) -> Optional[datetime]:
        times = [self._post_from_json(p).timestamp for p in raw_posts if p.get("author") == author]
        return max(times) if times else None
