"""
Pytest configuration and fixtures for testing
"""
import asyncio

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app_context import AppContext
from crud.store import BlobStore
from database import init_db

# 2023-11-14T22:13:20Z
START_MS = 1_700_000_000_000
HOUR_MS = 60 * 60 * 1000


class FakeClock:
    """Millisecond clock the tests move by hand"""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
async def test_engine(tmp_path):
    """
    Isolated SQLite database file per test.
    A file rather than :memory: so concurrent sessions get their own connections.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
def store(session_factory):
    return BlobStore(session_factory)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def make_context(store, clock):
    """
    Factory for client runtimes sharing one store.
    Timers use long intervals so tests drive reconciliation explicitly.
    """
    contexts = []

    async def factory(client_id=None):
        context = AppContext(store, client_id=client_id, clock=clock, sync_interval=3600, due_interval=3600)
        await context.start()
        contexts.append(context)
        return context

    yield factory

    for context in contexts:
        context.shutdown()
    # Let cancelled timer tasks finish
    await asyncio.sleep(0)
