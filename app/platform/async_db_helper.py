"""
Async Database Helper for Celery Tasks

Provides async database session management for synchronous Celery tasks
that drive the async scan pipeline through asyncio.run().
"""

from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.platform.config import settings

# Every asyncio.run() gets a new event loop, so pooled connections can't be reused
async_engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)
AsyncSessionLocal = async_sessionmaker(
    async_engine, class_=AsyncSession, expire_on_commit=False
)


@asynccontextmanager
async def get_async_db():
    """
    Get async database session for use in sync Celery tasks.

    Usage in Celery task:
        async with get_async_db() as db:
            await run_accessibility_scan(db, ...)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
