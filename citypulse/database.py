"""
Engines and sessions for the API process, Celery workers and maintenance
scripts.

The API keeps one pooled engine for its lifetime. Workers and scripts run
each job on a throwaway event loop, so they get an unpooled engine that
lives exactly as long as the job.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
    AsyncEngine,
)
from sqlalchemy.pool import NullPool

from .config import get_settings
from .models.base import Base
from .cache import init_cache, close_cache

logger = logging.getLogger(__name__)

engine: Optional[AsyncEngine] = None
async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_database_engine(url: Optional[str] = None, pooled: bool = True) -> AsyncEngine:
    """
    Build an async engine for the configured database.

    Args:
        url: Override of ``settings.database_url``
        pooled: Keep a connection pool; pass False for short-lived jobs
    """
    settings = get_settings()
    url = url or settings.database_url

    options = {"echo": settings.debug}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    elif not pooled:
        options["poolclass"] = NullPool
    else:
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )

    if "+asyncpg" in url:
        options.setdefault("connect_args", {})["server_settings"] = {"application_name": "citypulse"}

    return create_async_engine(url, **options)


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Objects stay readable after commit; services refresh what they change.
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


async def init_database() -> None:
    """
    Open the API's engine and cache.

    Outside production the tables are created on startup; production
    schemas are managed with Alembic.
    """
    global engine, async_session_factory

    settings = get_settings()
    engine = create_database_engine()
    async_session_factory = create_session_factory(engine)

    if not settings.is_production:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    await init_cache()
    logger.info(f"Database ready ({settings.environment})")


async def close_database() -> None:
    global engine, async_session_factory

    if engine is not None:
        await engine.dispose()
        engine = None
        async_session_factory = None
        logger.info("Database connections closed")

    await close_cache()


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Session from the API's engine, committed on success and rolled back
    on error.

    Raises:
        RuntimeError: If ``init_database`` has not run
    """
    if async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def standalone_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Session on a private, unpooled engine that is disposed on exit.

    Pooled connections are bound to the event loop that opened them, so
    Celery tasks and scripts use this instead of the API's engine.
    """
    job_engine = create_database_engine(pooled=False)
    try:
        async with create_session_factory(job_engine)() as session:
            yield session
    finally:
        await job_engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with get_db_session() as session:
        yield session
