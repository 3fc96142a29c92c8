"""
Pytest configuration and fixtures.

Provides fixtures for:
- Database sessions with automatic cleanup
- HTTP client bound to the test session
- Members and content in two communities
- Principals for each role
"""
import os

# Must be set before tribunal is imported: the engine is built at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("API_DEBUG", "false")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tribunal.core.constants import ContentKind
from tribunal.core.principal import Admin, Member, Moderator
from tribunal.db.base import Base
from tribunal.db.session import get_db
from tribunal.main import app
from tribunal.models import ContentItem, Member as MemberRow

# Use SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

COMMUNITY_ID = "c0ffee00-0000-4000-8000-000000000001"
OTHER_COMMUNITY_ID = "c0ffee00-0000-4000-8000-000000000002"

# Fixed clock for service tests
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client sharing the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def now() -> datetime:
    return NOW


# -----------------------------------------------------------------------------
# Member and content fixtures
# -----------------------------------------------------------------------------

async def _member(db_session, username: str, reputation: int = 10) -> MemberRow:
    member = MemberRow(username=username, reputation_score=reputation)
    db_session.add(member)
    await db_session.commit()
    return member


@pytest_asyncio.fixture
async def reporter(db_session) -> MemberRow:
    """Member in good standing who files reports."""
    return await _member(db_session, "reporter")


@pytest_asyncio.fixture
async def author(db_session) -> MemberRow:
    """Member whose content gets reported and sanctioned."""
    return await _member(db_session, "author")


@pytest_asyncio.fixture
async def low_rep_member(db_session) -> MemberRow:
    return await _member(db_session, "newcomer", reputation=-5)


async def _content(db_session, author_id: str, kind: ContentKind, community_id) -> ContentItem:
    item = ContentItem(kind=kind, author_id=author_id, community_id=community_id)
    db_session.add(item)
    await db_session.commit()
    return item


@pytest_asyncio.fixture
async def topic(db_session, author) -> ContentItem:
    """Topic posted by ``author`` in COMMUNITY_ID."""
    return await _content(db_session, author.id, ContentKind.TOPIC, COMMUNITY_ID)


@pytest_asyncio.fixture
async def reply(db_session, author) -> ContentItem:
    return await _content(db_session, author.id, ContentKind.REPLY, COMMUNITY_ID)


@pytest_asyncio.fixture
async def other_topic(db_session, author) -> ContentItem:
    """Topic in a community the test moderator does not moderate."""
    return await _content(db_session, author.id, ContentKind.TOPIC, OTHER_COMMUNITY_ID)


@pytest_asyncio.fixture
async def topics(db_session, author) -> list[ContentItem]:
    """Sixty topics, enough to exhaust the daily report limit."""
    items = [ContentItem(kind=ContentKind.TOPIC, author_id=author.id, community_id=COMMUNITY_ID) for _ in range(60)]
    db_session.add_all(items)
    await db_session.commit()
    return items


# -----------------------------------------------------------------------------
# Principal fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def moderator() -> Moderator:
    return Moderator(user_id="mod-1", community_id=COMMUNITY_ID)


@pytest.fixture
def other_moderator() -> Moderator:
    return Moderator(user_id="mod-2", community_id=OTHER_COMMUNITY_ID)


@pytest.fixture
def admin() -> Admin:
    return Admin(user_id="admin-1")


@pytest.fixture
def author_principal(author) -> Member:
    return Member(user_id=author.id)


def headers_for(principal) -> dict:
    """Gateway identity headers for a principal."""
    headers = {"X-User-Id": principal.user_id, "X-User-Role": principal.role.value}
    community_id = getattr(principal, "community_id", None)
    if community_id:
        headers["X-Community-Id"] = community_id
    return headers


def days(n: float) -> timedelta:
    return timedelta(days=n)
