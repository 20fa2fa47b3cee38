"""
Test fixtures for the Card Sets API test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - storage: Local image storage in a per-test temporary directory
  - client / other_client: Two independent async HTTP clients. Each has its
    own cookie jar, so each one is a separate browser session.
  - authenticated_client: `client` after registering user A
  - second_authenticated_client: `other_client` after registering user B
  - make_image: Factory producing encoded image bytes with Pillow
  - declared_png(): A header-only PNG declaring arbitrary dimensions

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation,
    with foreign keys enforced exactly like the app's own engine.
  - We override FastAPI's get_db and get_storage dependencies so the
    application code works exactly as it does in production.
  - Authenticated clients are created through the real /register endpoint,
    so they exercise the real session flow (cookie included).
"""

import io
import os
import struct
import tempfile
import zlib

# Configure the app before it is imported: cheap hashing, throwaway paths,
# and no cloud storage even if the developer's shell has it configured.
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "1")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="cardsets-uploads-"))
os.environ.pop("AZURE_STORAGE_CONNECTION_STRING", None)

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from PIL import Image
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from cardsets.database import Base, enable_sqlite_foreign_keys, get_db
from cardsets.main import app
from cardsets.storage import LocalImageStorage, get_storage


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"

USER_A = {
    "name": "Test",
    "surname": "User",
    "email": "testuser@example.com",
    "password": "SecurePass123!",
}

USER_B = {
    "name": "Second",
    "surname": "User",
    "email": "seconduser@example.com",
    "password": "SecurePass456!",
}


def declared_png(width: int, height: int) -> bytes:
    """A tiny PNG whose header declares the given dimensions."""

    def chunk(kind: bytes, payload: bytes) -> bytes:
        return (
            struct.pack(">I", len(payload))
            + kind
            + payload
            + struct.pack(">I", zlib.crc32(kind + payload))
        )

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(b""))
        + chunk(b"IEND", b"")
    )


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Provide an async session bound to the test engine."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session


@pytest.fixture
def storage(tmp_path):
    """Local image storage writing into this test's temporary directory."""
    return LocalImageStorage(tmp_path / "uploads", "/uploads")


@pytest_asyncio.fixture
async def app_overrides(db_engine, storage):
    """
    Point the app at the test database and storage.

    This overrides the get_db dependency so all requests hit the
    in-memory test database instead of the real one.
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    yield app
    app.dependency_overrides.clear()


def _new_client() -> AsyncClient:
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    )


@pytest_asyncio.fixture
async def client(app_overrides):
    """Async HTTP test client (unauthenticated, own cookie jar)."""
    async with _new_client() as ac:
        yield ac


@pytest_asyncio.fixture
async def other_client(app_overrides):
    """A second, independent client - a different browser, in effect."""
    async with _new_client() as ac:
        yield ac


@pytest_asyncio.fixture
async def authenticated_client(client):
    """Test client whose session belongs to a freshly registered user A."""
    response = await client.post("/register", json=USER_A)
    assert response.status_code == 201, f"Register failed: {response.text}"
    return client


@pytest_asyncio.fixture
async def second_authenticated_client(other_client):
    """
    A second authenticated user for cross-user tests.

    Use this alongside authenticated_client to verify that user B
    cannot see or touch user A's sets.
    """
    response = await other_client.post("/register", json=USER_B)
    assert response.status_code == 201, f"Register failed: {response.text}"
    return other_client


@pytest.fixture
def make_image():
    """Factory: encoded image bytes of a given format and size."""

    def _make(fmt: str = "PNG", size: tuple[int, int] = (64, 48), color=(200, 30, 30)) -> bytes:
        img = Image.new("RGB", size, color)
        buf = io.BytesIO()
        img.save(buf, format=fmt)
        return buf.getvalue()

    return _make
