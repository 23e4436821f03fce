"""
SiteLog Backend: Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite database file (aiosqlite) with the
       schema created from the ORM metadata, so tests never need PostgreSQL.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── database: Database handle on a throwaway SQLite file
    ├── db_session: AsyncSession bound to that database
    ├── temp_storage: Temporary directory for file operations
    ├── sample_image_bytes: Fake image content for upload tests
    ├── test_client: HTTPX AsyncClient wired to an app using `database`
    └── auth_headers: Bearer header for a freshly registered user
"""

import os
import tempfile

# Override settings BEFORE any sitelog imports; the settings singleton,
# the password context and the upload directory are all built at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["JWT_SECRET"] = "test-secret-not-real"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="sitelog_test_")
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from sitelog.database import Database


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'sitelog.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """
    Provides a real async session against the per-test SQLite database.

    Usage:
        async def test_get_report(db_session):
            result = await report_service.get_report(db_session, 1)
    """
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """Minimal JPEG: Start of Image (FFD8) + JFIF marker + End of Image (FFD9)."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest_asyncio.fixture
async def test_client(database: Database) -> AsyncGenerator[AsyncClient, None]:
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from sitelog.main import create_app

    app = create_app(database=database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def auth_headers(test_client: AsyncClient) -> Dict[str, str]:
    response = await test_client.post(
        "/api/auth/register",
        json={"email": "inspector@example.com", "password": "correct-horse", "displayName": "Inspector"},
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}
