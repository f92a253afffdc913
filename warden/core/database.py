"""Async database engine, session factory and dialect helpers."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from warden.core.config import settings

engine = create_async_engine(
    str(settings.database_url),
    echo=False,
    pool_pre_ping=True,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session; anything left uncommitted is rolled back on exit."""
    async with async_session_maker() as session:
        yield session


def dialect_insert(session: AsyncSession, table: Any) -> Any:
    """Return an ``INSERT`` construct supporting ``ON CONFLICT`` for the session's dialect.

    Production runs on PostgreSQL; the test suite runs on SQLite. Both
    dialects expose ``on_conflict_do_update`` / ``on_conflict_do_nothing``.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table)
    if dialect == "sqlite":
        return sqlite.insert(table)
    raise NotImplementedError(f"Upserts are not supported on dialect {dialect!r}")
