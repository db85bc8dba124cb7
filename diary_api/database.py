"""
Diary Backend — Database Engine & Session Management
=====================================================

What:  Async SQLAlchemy engine, session factory and declarative Base for the
       SQL-backed key-value store.
How:   The engine is built lazily on first use from settings.diary_kv_url.
       When the URL is empty no engine exists and callers get None, which
       the services report as a missing store binding.
Who:   Used by the KV store (services/kv_store.py), the health route and Alembic.
When:  Engine is created on the first request that needs it; disposed at shutdown.

Connection Pooling Strategy:
    Server databases (PostgreSQL via asyncpg):
        pool_size / max_overflow / pool_pre_ping from settings,
        pool_recycle=3600 to drop long-lived connections.
    SQLite (aiosqlite):
        SQLAlchemy picks a SQLite-specific pool that rejects the sizing
        arguments, so only the URL is passed.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from diary_api.config import settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Registers models with a single metadata object, which Alembic reads
    for migrations and tests use for create_all().
    """
    pass


def engine_options(url: str) -> Dict[str, Any]:
    """Keyword arguments for create_async_engine() appropriate to the URL's dialect."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


def get_engine() -> Optional[AsyncEngine]:
    """
    Return the process-wide async engine, creating it on first call.

    Returns None when no store binding is configured.
    """
    global _engine
    if not settings.store_configured:
        return None
    if _engine is None:
        url = settings.diary_kv_url.strip()
        _engine = create_async_engine(url, **engine_options(url))
        logger.info("Key-value store engine created (dialect=%s)", _engine.dialect.name)
    return _engine


def get_session_factory() -> Optional[async_sessionmaker]:
    """
    Return the session factory bound to the engine, or None without a binding.

    expire_on_commit=False: rows read in a session stay usable after it closes.
    """
    global _session_factory
    engine = get_engine()
    if engine is None:
        return None
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool and forgets the engine.
    When:  Called during application shutdown (lifespan handler).
    """
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Key-value store engine disposed")
    _engine = None
    _session_factory = None
