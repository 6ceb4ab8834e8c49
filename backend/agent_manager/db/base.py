"""Async engine, session factory and declarative base for the agent manager schema.

The schema is owned by Alembic (``alembic upgrade head``). init_db() only creates
tables itself when asked to, which local development and tests rely on.
"""

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from agent_manager.core.config import get_settings

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_db(url: str | None = None, *, create_tables: bool | None = None) -> None:
    """Create the process-wide engine and session factory. No-op if already initialized.

    Args:
        url: overrides ``DATABASE_URL``
        create_tables: run ``Base.metadata.create_all``; defaults to ``DB_CREATE_TABLES``
    """
    global _engine, _session_factory

    if _engine is not None:
        return

    settings = get_settings()
    if create_tables is None:
        create_tables = settings.db_create_tables

    _engine = create_async_engine(url or settings.database_url, echo=settings.debug, pool_pre_ping=True)
    _session_factory = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)

    if create_tables:
        import agent_manager.db.models  # noqa: F401

        async with _engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    logger.info("database_initialized", dialect=_engine.dialect.name, created_tables=create_tables)


async def ping_db() -> bool:
    """True when a trivial query succeeds; used by the readiness probe."""
    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("database_ping_failed", error=str(exc), error_type=type(exc).__name__)
        return False
    return True


async def close_db() -> None:
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the configured session factory.

    Raises RuntimeError if init_db() has not been called.
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory
