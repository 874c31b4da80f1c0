"""Service test fixtures — async in-memory SQLite stores + deterministic oracle fakes.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - Stores are the real SQL implementations (SqlGraphStore, SqlSessionStore)
    - Oracles are fakes from tests/services/fakes.py: no network, deterministic output

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for store tests
      (PostgreSQL-specific features not exercised here)
    - DatabaseSessionManager receives the test engine directly instead of a URL
"""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

import goodfaith.models  # noqa: F401  (registers tables on Base.metadata)
from goodfaith.db.base import Base
from goodfaith.infrastructure.database import DatabaseSessionManager
from goodfaith.infrastructure.graph_store import SqlGraphStore
from goodfaith.infrastructure.session_store import SqlSessionStore

from tests.services.fakes import FakeEmbedder, FakeOracle


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def db_manager(test_engine):
    return DatabaseSessionManager("sqlite+aiosqlite:///:memory:", engine=test_engine)


@pytest.fixture
def graph_store(db_manager):
    return SqlGraphStore(db_manager)


@pytest.fixture
def session_store(db_manager):
    return SqlSessionStore(db_manager)


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def embedder():
    return FakeEmbedder()
