"""
Async SQLAlchemy engine, sessions and the declarative base.

The BSD mirror tables and the Ground Control tables share one database and
one `Base.metadata`.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from groundcontrol.config import get_settings


class Base(DeclarativeBase):
    pass


def engine_options(database_url: str, echo: bool = False) -> dict[str, Any]:
    """Keyword arguments for `create_async_engine`.

    SQLite (used by the test suite) has no connection pool to size.
    """
    options: dict[str, Any] = {"echo": echo}
    if not database_url.startswith("sqlite"):
        options.update(pool_pre_ping=True, pool_size=5, max_overflow=10)
    return options


class Database:
    """Lazily created engine plus the session factory bound to it."""

    def __init__(self, database_url: str | None = None, echo: bool | None = None) -> None:
        settings = get_settings()
        self.url = database_url or settings.database_url
        self.echo = settings.debug if echo is None else echo
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    def _connect(self) -> None:
        self._engine = create_async_engine(self.url, **engine_options(self.url, self.echo))
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False, autoflush=False)

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._connect()
        return self._engine

    @property
    def sessions(self) -> async_sessionmaker[AsyncSession]:
        if self._sessions is None:
            self._connect()
        return self._sessions

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """A session that commits when the block succeeds and rolls back otherwise."""
        async with self.sessions() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            await session.commit()

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessions = None


_database: Database | None = None


def get_database() -> Database:
    """Process-wide `Database`, created on first use."""
    global _database
    if _database is None:
        _database = Database()
    return _database


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one transaction per request."""
    async with get_database().transaction() as session:
        yield session
