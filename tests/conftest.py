"""
Test fixtures for the Ledger API test suite.

  - store: Fresh AccountStore on its own SQLite file for each test
  - client: Async HTTP test client wired to that store

Key design decisions:
  - Each test gets a file-backed SQLite database under pytest's tmp_path.
    A file (rather than :memory:) gives every session its own connection,
    which the conflict-retry tests need to simulate a concurrent writer.
  - We override the get_store dependency so the application code runs
    exactly as it does in production, just against the test store.
"""

import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from ledger.database import create_engine, get_store
from ledger.main import app
from ledger.store import AccountStore


@pytest_asyncio.fixture
async def store(tmp_path):
    """Create a store with an empty accounts table for each test."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    account_store = AccountStore(engine, max_attempts=5)
    await account_store.create_schema()
    yield account_store
    await account_store.dispose()


@pytest_asyncio.fixture
async def client(store):
    """
    Async HTTP test client with the test store injected.

    ASGITransport doesn't run the lifespan, so app.state.store is never
    built here; the dependency override supplies the store instead.
    """
    app.dependency_overrides[get_store] = lambda: store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
