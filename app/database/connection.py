"""Async SQLAlchemy engine for PostgreSQL (asyncpg).

Repositories open one short-lived session per operation::

    async with get_session() as session:
        user = await session.get(User, user_id)
"""

from __future__ import annotations

import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings
from app.core.logging import get_logger


logger = get_logger("database")

_PG_SCHEME_RE = re.compile(r"^postgres(?:ql)?://")

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_async_database_url(url: str) -> str:
    """``postgres://`` and ``postgresql://`` URLs get the asyncpg driver; others pass through."""
    return _PG_SCHEME_RE.sub("postgresql+asyncpg://", url, count=1)


async def init_sqlalchemy_engine() -> AsyncEngine:
    global _engine, _session_factory

    if _engine is None:
        _engine = create_async_engine(
            get_async_database_url(settings.database_url),
            pool_size=settings.db_pool_min_size,
            max_overflow=settings.db_pool_max_size - settings.db_pool_min_size,
            pool_pre_ping=True,
            pool_recycle=3600,
            # Code expiry is compared against UTC timestamps
            connect_args={"server_settings": {"application_name": "cryptoinvest", "timezone": "UTC"}},
        )
        _session_factory = async_sessionmaker(_engine, expire_on_commit=False, autoflush=False)
        logger.info("Database engine ready")
    return _engine


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Session that is rolled back if the block raises."""
    if _session_factory is None:
        await init_sqlalchemy_engine()

    async with _session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def db_healthcheck() -> bool:
    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Database healthcheck failed: {e}")
        return False
    return True


async def close_sqlalchemy_engine() -> None:
    global _engine, _session_factory

    if _engine is None:
        return
    await _engine.dispose()
    _engine, _session_factory = None, None
    logger.info("Database engine disposed")
