"""Async database engine, session factory, and lifespan management.

PostgreSQL through asyncpg in deployment; any async SQLAlchemy dialect works,
which is how the tests run on aiosqlite.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from gdpr_engine.config import DatabaseSettings, settings


def build_engine(db: DatabaseSettings) -> AsyncEngine:
    """Create the async engine described by `db`. Does not connect."""
    return create_async_engine(db.database_url, echo=db.echo)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessions keep loaded attributes after commit; results outlive the transaction."""
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


# ── Process-wide instances ───────────────────────────────────────────

engine: AsyncEngine = build_engine(settings.db)
async_session_factory = build_session_factory(engine)


# ── Lifespan helpers ─────────────────────────────────────────────────


async def init_db() -> None:
    """Create tables outside production; production schemas come from Alembic."""
    if settings.is_production:
        return

    # Import here to ensure all models are registered with Base.metadata
    from gdpr_engine.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the database engine. Called during FastAPI lifespan shutdown."""
    await engine.dispose()


@contextlib.asynccontextmanager
async def db_lifespan() -> AsyncGenerator[None, None]:
    """Context manager for database lifecycle.

    Usage in FastAPI lifespan:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            async with db_lifespan():
                yield
    """
    await init_db()
    try:
        yield
    finally:
        await close_db()
