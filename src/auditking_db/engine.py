"""Process-wide async engine for the Audit King database.

The engine and its session factory are created on first use from
``auditking_db.config`` and shared by the API server and the export CLI.
``session_scope()`` is the unit of work: it commits when the block exits
cleanly and rolls back otherwise.  Call ``dispose_engine()`` on shutdown.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from auditking_db.config import get_async_url

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def pool_settings() -> dict[str, int]:
    """Connection pool sizing from ``PG_POOL_SIZE`` / ``PG_MAX_OVERFLOW``."""
    return {
        "pool_size": int(os.getenv("PG_POOL_SIZE", "5")),
        "max_overflow": int(os.getenv("PG_MAX_OVERFLOW", "10")),
    }


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        pool = pool_settings()
        _engine = create_async_engine(get_async_url(), pool_pre_ping=True, **pool)
        logger.info("Database engine created (%s)", ", ".join(f"{k}={v}" for k, v in pool.items()))
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        # Rows stay readable after commit; views are built after the unit of work
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """One unit of work: repositories flush, this commits or rolls back."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
