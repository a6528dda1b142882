"""Test fixtures — a fresh in-memory database and object store per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own SQLite (aiosqlite) in-memory engine. StaticPool
   keeps the single connection alive, so every session sees the same DB.
2. Tables are created from the ORM models, the same metadata Alembic uses.
3. The app's get_db and get_object_store dependencies are overridden, so
   routes use the test session and a FlakyStore we can make fail on demand.

No Postgres, Redis, or Cloudinary needed. Rate limiting is skipped because
Redis is never initialized (the ASGI transport doesn't run the lifespan).
"""

import os

os.environ.setdefault("MEDIAHUB_STORAGE_BACKEND", "memory")
os.environ.setdefault("MEDIAHUB_ENVIRONMENT", "development")

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from mediahub.db.engine import get_db
from mediahub.db.models import Base
from mediahub.main import app
from mediahub.storage import AssetKind, StorageError, get_object_store
from mediahub.storage.memory import MemoryStore

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

PASSWORD = "password_123"


class FlakyStore(MemoryStore):
    """MemoryStore with switchable failures and a log of calls."""

    def __init__(self):
        super().__init__()
        self.fail_uploads: set[str] = set()  # filenames whose upload raises
        self.fail_deletes = False
        self.uploaded: list[str] = []
        self.deleted: list[str] = []

    async def upload(self, asset):
        if asset.filename in self.fail_uploads:
            raise StorageError(f"simulated upload failure for {asset.filename}")
        result = await super().upload(asset)
        self.uploaded.append(result.storage_key)
        return result

    async def delete(self, storage_key, kind=AssetKind.IMAGE):
        self.deleted.append(storage_key)
        if self.fail_deletes:
            return False
        return await super().delete(storage_key, kind)


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a brand-new in-memory database."""
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest_asyncio.fixture()
async def store():
    return FlakyStore()


@pytest_asyncio.fixture()
async def client(db_session, store):
    """HTTP client with the app's database and object store overridden.

    Learn: Auth is NOT overridden: tests register and log in for real,
    and the client's cookie jar carries accessToken/refreshToken between
    requests just like a browser.
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_object_store] = lambda: store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def image_files(prefix: str = "img") -> dict:
    return {
        "avatar": (f"{prefix}-avatar.png", b"\x89PNG avatar bytes", "image/png"),
        "coverImage": (f"{prefix}-cover.png", b"\x89PNG cover bytes", "image/png"),
    }


@pytest_asyncio.fixture()
async def register(client):
    """Factory: register a user through the API, return the response."""

    async def _register(username: str = "alice", email: str | None = None):
        return await client.post(
            "/api/v1/auth/register",
            data={
                "fullname": f"{username.title()} Example",
                "email": email or f"{username}@example.com",
                "username": username,
                "password": PASSWORD,
            },
            files=image_files(username),
        )

    return _register
