import os
import tempfile

TEST_DB_URL = "sqlite://:memory:"
# Must be in place before microblog.config builds its Settings
os.environ["STORE_BACKEND"] = "db"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["BCRYPT_ROUNDS"] = "4"  # Minimum bcrypt cost keeps the suite fast
os.environ["JWT_SECRET"] = "test-secret"
os.environ["EXEMPT_USERNAMES"] = "fries"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="microblog-uploads-")

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from microblog.api import deps
from microblog.core import db as db_module
from microblog.main import app
from microblog.stores import JsonFileStore

db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


@pytest_asyncio.fixture
async def db():
    """Fresh Tortoise database for store-level tests."""
    await _init_test_db()
    yield
    await Tortoise.close_connections()


def _fresh_singletons() -> None:
    # Stores hold asyncio locks, which must not outlive a test's event loop
    deps.get_store.cache_clear()
    deps.get_image_uploads.cache_clear()


@pytest_asyncio.fixture
async def client(db):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    Cookies set by the app persist across requests made with this client.
    """
    _fresh_singletons()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    _fresh_singletons()


@pytest_asyncio.fixture
async def json_client(tmp_path):
    """Same app, but backed by the flat-file store in a temporary directory."""
    _fresh_singletons()
    store = JsonFileStore(tmp_path / "data")
    app.dependency_overrides[deps.get_store] = lambda: store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    app.dependency_overrides.clear()
    _fresh_singletons()


@pytest_asyncio.fixture
async def json_store(tmp_path):
    return JsonFileStore(tmp_path / "data")


@pytest_asyncio.fixture
async def signup(client):
    """
    Factory fixture: register a user through the API (which also logs it in
    on this client).
    """

    async def _signup(username: str, password: str = "pw123"):
        resp = await client.post("/signup", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.text
        return resp

    return _signup
