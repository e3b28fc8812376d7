"""Shared pytest fixtures for the Nexus Learn test suite.

Provides:
- db_engine: in-memory SQLite async engine with all tables
- db_session: SAVEPOINT-isolated async session (app commits don't leak)
- session_factory: factory bound to db_engine, for SqlArchiveStore
- client: AsyncClient with archive and generator dependencies overridden
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from nexus_learn.db.session import Base
import nexus_learn.db.tables  # noqa: F401 - register ORM models on Base.metadata
from tests.fakes import (
    FakeVisualGenerator,
    InMemoryArchiveStore,
    ScriptedStoryGenerator,
    ScriptedTurnGenerator,
    StubLLMClient,
)


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with all tables."""
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Provide a SAVEPOINT-isolated session.

    The outer transaction is never committed; it rolls back at teardown.
    Application code calling session.commit() triggers a SAVEPOINT release,
    which is then restarted so subsequent operations stay in the same
    outer transaction. This ensures full test isolation.
    """
    async with db_engine.connect() as conn:
        trans = await conn.begin()
        session = AsyncSession(bind=conn, expire_on_commit=False)

        # Start a nested SAVEPOINT
        nested = await conn.begin_nested()

        @event.listens_for(session.sync_session, "after_transaction_end")
        def restart_savepoint(sync_session, transaction):  # noqa: ARG001
            nonlocal nested
            if transaction.nested and not transaction._parent.nested:
                nested = conn.sync_connection.begin_nested()

        yield session

        await session.close()
        await trans.rollback()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def turn_generator() -> ScriptedTurnGenerator:
    return ScriptedTurnGenerator()


@pytest.fixture
def visual_generator() -> FakeVisualGenerator:
    return FakeVisualGenerator()


@pytest.fixture
def story_generator() -> ScriptedStoryGenerator:
    return ScriptedStoryGenerator()


@pytest.fixture
def archive() -> InMemoryArchiveStore:
    return InMemoryArchiveStore()


@pytest.fixture
def stub_llm() -> StubLLMClient:
    return StubLLMClient()


@pytest.fixture
async def client(turn_generator, visual_generator, story_generator, archive, stub_llm):
    """AsyncClient with the archive and all generators overridden."""
    from nexus_learn.api import dependencies
    from nexus_learn.api.main import app

    app.dependency_overrides[dependencies.get_turn_generator] = lambda: turn_generator
    app.dependency_overrides[dependencies.get_visual_generator] = lambda: visual_generator
    app.dependency_overrides[dependencies.get_story_generator] = lambda: story_generator
    app.dependency_overrides[dependencies.get_archive_store] = lambda: archive
    app.dependency_overrides[dependencies.get_llm_client] = lambda: stub_llm

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
