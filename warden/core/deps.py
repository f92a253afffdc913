"""Dependency injection for FastAPI routes."""

import asyncio
from collections.abc import AsyncGenerator
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

# Re-export auth dependencies for convenience
from warden.core.auth import AdminUser, CurrentUser, get_current_user, require_admin
from warden.core.capabilities import SchemaCapabilities, detect_capabilities
from warden.core.config import settings
from warden.core.database import get_async_session
from warden.services.file_janitor import FileJanitor


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Alias for get_async_session."""
    async for session in get_async_session():
        yield session


# Shared Redis connection pool
_redis_pool: aioredis.ConnectionPool | None = None


def _get_redis_pool() -> aioredis.ConnectionPool:
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.ConnectionPool.from_url(
            str(settings.redis_url), decode_responses=True
        )
    return _redis_pool


async def get_redis() -> AsyncGenerator[aioredis.Redis, None]:
    """Yield a Redis client from the shared connection pool."""
    pool = _get_redis_pool()
    r = aioredis.Redis(connection_pool=pool)
    try:
        yield r
    finally:
        await r.aclose()


# Table-presence descriptor, detected once per process
_capabilities: SchemaCapabilities | None = None
_capabilities_lock = asyncio.Lock()


def set_capabilities(capabilities: SchemaCapabilities | None) -> None:
    """Install (or clear, with ``None``) the process-wide descriptor."""
    global _capabilities  # noqa: PLW0603
    _capabilities = capabilities


async def get_capabilities(db: AsyncSession = Depends(get_db)) -> SchemaCapabilities:
    """Return the descriptor, detecting it on first use if startup could not."""
    global _capabilities  # noqa: PLW0603
    if _capabilities is None:
        async with _capabilities_lock:
            if _capabilities is None:
                _capabilities = await detect_capabilities(db)
    return _capabilities


def get_janitor() -> FileJanitor:
    return FileJanitor(settings.uploads_root)


# Type aliases for dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db)]
Capabilities = Annotated[SchemaCapabilities, Depends(get_capabilities)]
Janitor = Annotated[FileJanitor, Depends(get_janitor)]
Redis = Annotated[aioredis.Redis, Depends(get_redis)]


__all__ = [
    "AdminUser",
    "Capabilities",
    "CurrentUser",
    "DBSession",
    "Janitor",
    "Redis",
    "get_capabilities",
    "get_current_user",
    "get_db",
    "get_janitor",
    "get_redis",
    "require_admin",
    "set_capabilities",
]
