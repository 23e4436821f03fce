"""
SiteLog Backend: Database Handle & Session Management
========================================================

What:  The `Database` store handle (async engine + session factory), the
       declarative `Base`, and the per-request session dependency.
Why:   Centralizes all database connection logic in one place and gives the
       connection pool an explicit owner with an explicit lifecycle.
How:   `create_app()` builds one `Database` and stores it on `app.state`.
       Route handlers receive sessions through `get_db_session`, which
       commits on success and rolls back on error. The lifespan handler
       disposes the engine on shutdown.

Connection Pooling Strategy:
    pool_size / max_overflow: from settings (PostgreSQL only)
    pool_pre_ping:     validates connections before use
    pool_recycle=3600: recycles connections every hour

    SQLite URLs (used by the test suite) skip the pool sizing options,
    which SQLite's pool classes do not accept.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from sitelog.config import Settings, settings as default_settings


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic and `create_all`."""


class Database:
    """
    Owns the async engine and session factory for one process.

    Lifecycle:
        1. Constructed by create_app() (or directly by tests)
        2. Shared by every request through app.state.database
        3. dispose() closes all pooled connections at shutdown
    """

    def __init__(self, url: str, echo: bool = False, **engine_options: Any):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_options)
        # expire_on_commit=False: ORM objects stay readable after commit,
        # response building happens after the transaction closes
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "Database":
        """Build a handle using the pool configuration from settings."""
        config = config or default_settings
        options: Dict[str, Any] = {}
        if not config.database_url.startswith("sqlite"):
            options.update(
                pool_size=config.db_pool_size,
                max_overflow=config.db_max_overflow,
                pool_pre_ping=config.db_pool_pre_ping,
                pool_recycle=3600,
            )
        return cls(config.database_url, echo=config.log_level == "DEBUG", **options)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide a session scoped to one unit of work.

        On success: commits. On any error: rolls back and re-raises.
        Always: closes the session, returning its connection to the pool.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def ping(self) -> bool:
        """Run SELECT 1; used by the health check."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def create_all(self) -> None:
        """Create every table known to Base.metadata (tests and local bootstrapping)."""
        # Registers the model classes with Base.metadata
        import sitelog.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Gracefully close all connections in the pool."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    The store handle comes from `request.app.state.database`, so each
    application instance (production or test) talks to its own pool.

    Example usage in a route:
        @router.get("/api/reports")
        async def list_reports(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
