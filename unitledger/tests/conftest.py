"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from unitledger.app.main import app
from unitledger.app.db.session import get_db, Base, enable_sqlite_foreign_keys
from unitledger.app.core.dependencies import (
    get_meeting_directory, get_member_directory, get_term_calendar,
)
from unitledger.app.domain.ledger.account_registry import AccountRegistry
from unitledger.app.services.collaborators import (
    InMemoryMeetingDirectory, InMemoryMemberDirectory, TermWindow,
)

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FixedTermCalendar:
    """Term calendar whose window the test controls."""

    def __init__(self, term: TermWindow = None):
        self.term = term

    async def current_term(self):
        return self.term


@pytest.fixture
async def engine():
    """Fresh in-memory database per test, with foreign keys enforced."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


# Shared session for fixture data creation and domain-level tests
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def accounts(db_session):
    """Seed the default chart of accounts and return snapshots keyed by code."""
    await AccountRegistry.ensure_default_accounts(db_session)
    return {a.code: a for a in await AccountRegistry.list_accounts(db_session)}


@pytest.fixture
def term_calendar():
    return FixedTermCalendar()


@pytest.fixture
def member_directory():
    return InMemoryMemberDirectory({"GU001": "Jane Smith"})


@pytest.fixture
def meeting_directory():
    return InMemoryMeetingDirectory()


@pytest.fixture
async def client(session_factory, term_calendar, member_directory, meeting_directory):
    """Async client for testing, wired to the per-test database and collaborators."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_term_calendar] = lambda: term_calendar
    app.dependency_overrides[get_member_directory] = lambda: member_directory
    app.dependency_overrides[get_meeting_directory] = lambda: meeting_directory

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}

