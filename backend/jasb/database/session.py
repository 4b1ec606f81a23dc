"""
Database engine, session factory and the transaction boundary.

Every ledger mutation runs inside ``in_transaction``: the whole unit commits or
none of it does.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from jasb.config import get_settings
from jasb.database.base import Base
from jasb.errors import ConflictError

logger = logging.getLogger(__name__)

# Async engine and session factory
_async_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_engine(url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Create an async engine, applying pool settings where the driver supports them."""
    config = get_settings().database
    url = url or config.url
    kwargs = {"echo": config.echo if echo is None else echo}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


def get_engine() -> AsyncEngine:
    """Get or create the process-wide engine."""
    global _async_engine
    if _async_engine is None:
        _async_engine = create_engine()
    return _async_engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the process-wide session factory."""
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = create_session_factory(get_engine())
    return _async_session_factory


async def init_models(engine: AsyncEngine | None = None) -> None:
    """Create all tables that do not exist yet."""
    # Registers every table on Base.metadata
    import jasb.models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema is up to date")


async def dispose_engine() -> None:
    """Close pooled connections of the process-wide engine."""
    global _async_engine, _async_session_factory
    if _async_engine is not None:
        await _async_engine.dispose()
    _async_engine = None
    _async_session_factory = None


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Async context manager for database sessions in scripts and the CLI.

    Usage:
        async with get_db_session() as db:
            result = await db.execute(select(User))
    """
    session = get_session_factory()()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


@asynccontextmanager
async def in_transaction(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Run a block as one atomic unit on ``db``.

    Commits when the block finishes, rolls back on any exception. A uniqueness
    violation raised by a racing writer surfaces as ``ConflictError``.
    """
    try:
        yield db
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Integrity violation rolled back: {e.orig}")
        raise ConflictError("A concurrent change conflicted with this request.") from e
    except BaseException:
        await db.rollback()
        raise
