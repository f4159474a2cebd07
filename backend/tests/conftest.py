"""
Pytest fixtures for test database, client, and authentication.

Each test gets its own file-backed SQLite database (aiosqlite) with tables
created up front and dropped afterwards. Concurrency tests open one session
per simulated caller from `session_factory`, like separate requests would.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./cinema_booking_test.db")
os.environ.setdefault("STORAGE_MAX_ATTEMPTS", "5")
os.environ.setdefault("STORAGE_RETRY_BACKOFF_SECONDS", "0.01")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from app.main import app
from app.db.base import Base
from app.db.session import build_engine, build_sessionmaker, get_db
from app.core.security import create_access_token
from app.models import Cinema, Screening, User


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get their own session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _add(db_session: AsyncSession, obj):
    db_session.add(obj)
    await db_session.commit()
    await db_session.refresh(obj)
    return obj


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _add(db_session, User(
        email="admin@example.com",
        first_name="Ada",
        last_name="Admin",
        is_admin=True,
    ))


@pytest_asyncio.fixture
async def alice(db_session: AsyncSession) -> User:
    return await _add(db_session, User(email="alice@example.com", first_name="Alice", last_name="Liddell"))


@pytest_asyncio.fixture
async def bob(db_session: AsyncSession) -> User:
    return await _add(db_session, User(email="bob@example.com", first_name="Bob", last_name="Builder"))


@pytest_asyncio.fixture
async def cinema(db_session: AsyncSession) -> Cinema:
    """Cinema Grand: 10 rows of 15 seats."""
    return await _add(db_session, Cinema(name="Cinema Grand", rows=10, seats_per_row=15))


@pytest_asyncio.fixture
async def screening(db_session: AsyncSession, cinema: Cinema) -> Screening:
    return await _add(db_session, Screening(
        cinema_id=cinema.id,
        movie_title="Metropolis",
        starts_at=datetime.now(timezone.utc) + timedelta(days=7),
    ))


def auth_headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


@pytest.fixture
def alice_headers(alice: User) -> dict:
    return auth_headers_for(alice)


@pytest.fixture
def bob_headers(bob: User) -> dict:
    return auth_headers_for(bob)
