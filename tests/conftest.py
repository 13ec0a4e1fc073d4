"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine
from core.config import settings
from core.database import build_engine, build_session_maker
from models.base import Base
from schemas.harvest import HarvestInput
from harvest_doubles import InMemoryRecordStore, InMemoryCheckpointStore


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Tests decide explicitly whether an API key or proxies are available"""
    monkeypatch.setattr(settings, "TMDB_API_KEY", None)
    monkeypatch.setattr(settings, "PROXY_URLS", [])


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'harvest.db'}"


@pytest_asyncio.fixture(scope="function")
async def test_engine(database_url) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with all tables"""
    engine = build_engine(database_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return build_session_maker(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session"""
    async with session_maker() as session:
        yield session
        await session.rollback()


# ============================================================================
# Harvest fixtures
# ============================================================================

@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def checkpoint_store():
    return InMemoryCheckpointStore()


@pytest.fixture
def make_input():
    """Build a HarvestInput from camelCase keys, without delays"""
    def _make(**payload) -> HarvestInput:
        base = {"minDelayMs": 0, "maxDelayMs": 0}
        base.update(payload)
        return HarvestInput.from_payload(base)
    return _make
