"""Engines and sessions for the API and for background jobs."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

import structlog
from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from taskflow.config import Settings, get_settings
from taskflow.realtime.channels import discard_uncommitted, publish_committed

logger = structlog.get_logger()
settings = get_settings()


def build_engine(settings: Settings, pooled: bool = True) -> AsyncEngine:
    """Engine for ``settings.database_url``.

    Unpooled engines are for callers that run their own short-lived event
    loop, such as Celery tasks.
    """
    options: dict = {"echo": settings.debug, "pool_pre_ping": True}
    if pooled:
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
        )
    else:
        options["poolclass"] = NullPool
    return create_async_engine(str(settings.database_url), **options)


def session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(settings)
async_session_factory = session_factory(engine)


async def init_db() -> None:
    """Verify database connectivity at startup."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db() -> None:
    await engine.dispose()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: committed on success, rolled back on error.

    Realtime messages queued during the request go out only after the
    commit succeeds.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            discard_uncommitted(session)
            raise
        publish_committed(session)


DBSession = Annotated[AsyncSession, Depends(get_db_session)]


@asynccontextmanager
async def job_session() -> AsyncIterator[AsyncSession]:
    """Session on a throwaway unpooled engine, committed when the block succeeds."""
    job_engine = build_engine(get_settings(), pooled=False)
    try:
        async with session_factory(job_engine)() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                discard_uncommitted(session)
                raise
            publish_committed(session)
    finally:
        await job_engine.dispose()
        logger.debug("job_engine_disposed")
