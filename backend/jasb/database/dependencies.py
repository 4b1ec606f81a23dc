"""
FastAPI dependency injection for database sessions.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from jasb.database.session import get_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides an async database session.

    Usage:
        @router.get("/bets")
        async def list_bets(db: AsyncSession = Depends(get_db)):
            ...

    The session is closed after the request; mutations commit through
    ``in_transaction`` inside the services.
    """
    session = get_session_factory()()
    try:
        yield session
    finally:
        await session.close()
