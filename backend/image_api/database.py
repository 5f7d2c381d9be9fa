"""
Database configuration and session management.
Uses SQLAlchemy async engine; any async driver URL works
(postgresql+asyncpg in production, sqlite+aiosqlite for local runs).

Persistence is optional: without DATABASE_URL no engine is created and
get_db yields None.
"""
import logging
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from image_api.config import settings
from image_api.models.base import Base

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def get_engine() -> Optional[AsyncEngine]:
    """
    Get the shared async engine, creating it on first use.

    Returns:
        AsyncEngine, or None if DATABASE_URL is not configured
    """
    global _engine
    if _engine is None and settings.database_url:
        engine_kwargs = {
            "echo": False,  # Disable SQLAlchemy query logging
            "pool_pre_ping": True,
        }
        if not settings.database_url.startswith("sqlite"):
            engine_kwargs.update(pool_size=10, max_overflow=20)
        _engine = create_async_engine(settings.database_url, **engine_kwargs)
    return _engine


def get_session_factory() -> Optional[async_sessionmaker]:
    global _session_factory
    engine = get_engine()
    if _session_factory is None and engine is not None:
        _session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )
    return _session_factory


async def get_db() -> AsyncGenerator[Optional[AsyncSession], None]:
    """
    Dependency for FastAPI routes to get database session.
    Usage: db: Optional[AsyncSession] = Depends(get_db)

    Yields None when persistence is disabled.
    """
    session_factory = get_session_factory()
    if session_factory is None:
        yield None
        return
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """
    Initialize database: create tables.
    Called on application startup when AUTO_CREATE_TABLES is set.
    """
    from image_api.models.image import Image, ImageVariant  # noqa: F401  (register tables)

    engine = get_engine()
    if engine is None:
        logger.info("DATABASE_URL not set, metadata persistence disabled")
        return

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")


async def dispose_db():
    """Close pooled connections on shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
