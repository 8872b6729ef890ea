"""Shared fixtures: a throwaway aiosqlite database per test."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from gdpr_engine.config import DatabaseSettings, GDPRSettings, Settings
from gdpr_engine.db.engine import build_engine, build_session_factory
from gdpr_engine.models import Base
from gdpr_engine.security.service import ConsentService, create_consent_service

TEST_SECRET = "test-pseudonym-secret"


@pytest.fixture
def test_settings() -> Settings:
    return Settings(gdpr=GDPRSettings(pseudonym_secret=TEST_SECRET))


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh file-backed SQLite database with all tables."""
    engine = build_engine(DatabaseSettings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'gdpr.db'}"))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
def service(session_factory, test_settings) -> ConsentService:
    return create_consent_service(session_factory, test_settings)
