"""
Database session management.

Provides async session factory and dependency injection for FastAPI.
"""
from collections.abc import AsyncGenerator

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tribunal.core.config import settings

logger = structlog.get_logger()


engine = create_async_engine(
    settings.database_url_computed,
    echo=settings.api_debug,
    pool_pre_ping=True,  # Verify connections before using them
    pool_recycle=1800,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides an async database session.

    Services commit their own units of work through atomic(); anything left
    uncommitted when the request ends is rolled back.

    Usage:
        @router.post("/reports")
        async def submit_report(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error(
                "Database session error",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
