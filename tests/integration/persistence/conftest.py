"""Fixtures for repository tests against a SQLite file database."""

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from apsync.infrastructure.persistence.database import create_db_engine, create_session_factory
from apsync.infrastructure.persistence.tables import metadata, registry_metadata


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Per-test engine with all tables created."""
    engine = create_db_engine(f"sqlite+aiosqlite:///{tmp_path / 'apsync-test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
        await conn.run_sync(registry_metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine):
    factory = create_session_factory(engine)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine):
    return create_session_factory(engine)
