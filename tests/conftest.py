"""Pytest configuration and fixtures for the Warden test suite.

Provides:
- A file-backed SQLite database per test (aiosqlite), schema from the models
- Mock authentication (JWT bypass) for admin and regular callers
- Mock Redis (fakeredis)
- Disabled rate limiting
- A temporary uploads root with the profile and chat image directories
- Model factory fixtures for users, locations, messages and dependent rows
"""

import itertools
from collections.abc import AsyncGenerator, Callable
from datetime import date
from pathlib import Path
from typing import Any

import fakeredis.aioredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from warden.core.auth import get_current_user
from warden.core.capabilities import SchemaCapabilities
from warden.core.database import get_async_session
from warden.core.deps import get_capabilities, get_db, get_janitor, get_redis
from warden.core.rate_limit import limiter
from warden.main import app
from warden.models import (
    Base,
    City,
    Country,
    State,
    User,
    UserMessage,
    UserMessageAttachment,
)
from warden.services.file_janitor import CHAT_IMAGES_DIR, PROFILE_IMAGES_DIR, FileJanitor

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
ADMIN_ID = 9000
MEMBER_ID = 4242
TODAY = date(2026, 10, 18)

# ---------------------------------------------------------------------------
# Disable rate limiting globally for tests
# ---------------------------------------------------------------------------
limiter.enabled = False


# ---------------------------------------------------------------------------
# Per-test database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create every table in a fresh SQLite file and hand out a session factory.

    A file (not ``:memory:``) so that the test session and the sessions the
    app opens per request see the same data.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'warden.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session for test setup and for driving services directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def capabilities() -> SchemaCapabilities:
    """Every table of the model metadata is present."""
    return SchemaCapabilities.from_tables(Base.metadata.tables)


@pytest.fixture
def capabilities_without(capabilities: SchemaCapabilities) -> Callable[..., SchemaCapabilities]:
    """Build a descriptor that lacks the given tables."""

    def _without(*tables: str) -> SchemaCapabilities:
        return SchemaCapabilities.from_tables(capabilities.tables - set(tables))

    return _without


async def count_rows(session: AsyncSession, model: Any, *where: Any) -> int:
    """Count rows of ``model`` matching ``where``."""
    return await session.scalar(select(func.count()).select_from(model).where(*where)) or 0


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


@pytest.fixture
def uploads_root(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    (root / PROFILE_IMAGES_DIR).mkdir(parents=True)
    (root / CHAT_IMAGES_DIR).mkdir(parents=True)
    return root


@pytest.fixture
def janitor(uploads_root: Path) -> FileJanitor:
    return FileJanitor(uploads_root)


@pytest.fixture
def media_file(uploads_root: Path) -> Callable[..., Path]:
    """Write a small file under the uploads root and return its path."""

    def _write(relative: str, content: bytes = b"\xff\xd8\xff") -> Path:
        path = uploads_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return _write


# ---------------------------------------------------------------------------
# Fake Redis
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_redis() -> fakeredis.aioredis.FakeRedis:
    """Provide a fresh fakeredis instance per test."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


# ---------------------------------------------------------------------------
# Auth mock
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_user() -> dict[str, Any]:
    """Decoded JWT of the default caller: an admin."""
    return {"sub": str(ADMIN_ID), "email": "admin@example.com", "role": "admin"}


@pytest.fixture
def member_user() -> dict[str, Any]:
    """Decoded JWT of a regular platform member."""
    return {"sub": str(MEMBER_ID), "email": "member@example.com", "role": "user"}


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


def _install_overrides(
    session_factory: async_sessionmaker[AsyncSession],
    fake_redis: fakeredis.aioredis.FakeRedis,
    capabilities: SchemaCapabilities,
    janitor: FileJanitor,
    user: dict[str, Any] | None,
) -> None:
    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as s:
            yield s

    async def _override_redis() -> AsyncGenerator[fakeredis.aioredis.FakeRedis, None]:
        yield fake_redis

    app.dependency_overrides[get_async_session] = _override_session
    app.dependency_overrides[get_db] = _override_session
    app.dependency_overrides[get_redis] = _override_redis
    app.dependency_overrides[get_capabilities] = lambda: capabilities
    app.dependency_overrides[get_janitor] = lambda: janitor

    if user is not None:

        async def _override_user() -> dict[str, Any]:
            return user

        app.dependency_overrides[get_current_user] = _override_user


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    fake_redis: fakeredis.aioredis.FakeRedis,
    capabilities: SchemaCapabilities,
    janitor: FileJanitor,
    auth_user: dict[str, Any],
) -> AsyncGenerator[AsyncClient, None]:
    """Admin async test client with all dependencies overridden."""
    _install_overrides(session_factory, fake_redis, capabilities, janitor, auth_user)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def member_client(
    session_factory: async_sessionmaker[AsyncSession],
    fake_redis: fakeredis.aioredis.FakeRedis,
    capabilities: SchemaCapabilities,
    janitor: FileJanitor,
    member_user: dict[str, Any],
) -> AsyncGenerator[AsyncClient, None]:
    """Client authenticated as a regular (non-admin) member."""
    _install_overrides(session_factory, fake_redis, capabilities, janitor, member_user)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def unauthed_client(
    session_factory: async_sessionmaker[AsyncSession],
    fake_redis: fakeredis.aioredis.FakeRedis,
    capabilities: SchemaCapabilities,
    janitor: FileJanitor,
) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated async test client. Auth is NOT overridden."""
    _install_overrides(session_factory, fake_redis, capabilities, janitor, None)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def plain_client() -> AsyncGenerator[AsyncClient, None]:
    """Minimal async test client with NO dependency overrides."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Model Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def row_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Insert one row of any model and return it."""

    async def _create(model: Any, **fields: Any) -> Any:
        row = model(**fields)
        db_session.add(row)
        await db_session.commit()
        await db_session.refresh(row)
        return row

    return _create


@pytest.fixture
def user_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates valid, consistent users."""
    sequence = itertools.count(1)

    async def _create(**fields: Any) -> User:
        n = next(sequence)
        values: dict[str, Any] = {
            "email": f"user{n}@example.com",
            "real_name": f"Test User {n}",
            "gender": "female",
            "birthdate": date(1990, 5, 17),
            "last_ip_address": "203.0.113.7",
        }
        values.update(fields)
        user = User(**values)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _create


@pytest.fixture
def location_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates a country -> state -> city chain."""

    async def _create(name: str = "Testland") -> tuple[Country, State, City]:
        country = Country(name=name, iso_code=name[:3].upper())
        db_session.add(country)
        await db_session.flush()
        state = State(country_id=country.id, name=f"{name} State")
        db_session.add(state)
        await db_session.flush()
        city = City(state_id=state.id, name=f"{name} City")
        db_session.add(city)
        await db_session.commit()
        return country, state, city

    return _create


@pytest.fixture
def message_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates a message, optionally with image attachments."""

    async def _create(
        *,
        sender_id: int,
        receiver_id: int,
        content: str = "hello",
        attachments: list[tuple[str | None, str | None]] | None = None,
    ) -> UserMessage:
        message = UserMessage(sender_id=sender_id, receiver_id=receiver_id, content=content)
        db_session.add(message)
        await db_session.flush()
        for file_path, thumbnail_path in attachments or []:
            db_session.add(
                UserMessageAttachment(
                    message_id=message.id,
                    file_path=file_path,
                    thumbnail_path=thumbnail_path,
                    mime_type="image/jpeg",
                )
            )
        await db_session.commit()
        await db_session.refresh(message)
        return message

    return _create
