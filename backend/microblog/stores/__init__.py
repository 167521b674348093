"""
Store backends.

- TortoiseStore: relational database through Tortoise ORM (STORE_BACKEND=db)
- JsonFileStore: flat JSON files under DATA_DIR (STORE_BACKEND=json)
"""
from microblog.config import Settings
from .base import NewPost, PostStore, StoredPost, UserBackend, UserRow
from .json_store import JsonFileStore
from .tortoise_store import TortoiseStore


def build_store(settings: Settings) -> TortoiseStore | JsonFileStore:
    if settings.store_backend == "db":
        return TortoiseStore()
    if settings.store_backend == "json":
        return JsonFileStore(settings.data_dir)
    raise ValueError(f"Unknown STORE_BACKEND: {settings.store_backend!r} (expected 'db' or 'json')")


__all__ = [
    "NewPost",
    "PostStore",
    "StoredPost",
    "UserBackend",
    "UserRow",
    "JsonFileStore",
    "TortoiseStore",
    "build_store",
]
