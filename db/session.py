from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from redis.asyncio import ConnectionPool, Redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from core.config import settings
from core.logger import logger


def build_engine(url: str) -> AsyncEngine:
    """asyncpg in production; SQLite (tests, local runs) takes no pool sizing."""
    options = {"echo": False, "future": True}
    if not url.startswith("sqlite"):
        options.update(
            pool_pre_ping=True,
            pool_recycle=3600,
            pool_size=20,       # Base connections
            max_overflow=10,    # Burst connections
        )
    return create_async_engine(url, **options)


engine = build_engine(settings.DATABASE_URL)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

_redis_pool: Optional[ConnectionPool] = None


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Standalone unit of work for code running outside a request (session timers, background tasks)."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except SQLAlchemyError:
            await session.rollback()
            raise


async def get_db() -> AsyncIterator[AsyncSession]:
    async with session_scope() as session:
        yield session


def redis_pool() -> ConnectionPool:
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = ConnectionPool.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_pool


async def get_redis() -> AsyncIterator[Redis]:
    redis = Redis(connection_pool=redis_pool())
    try:
        yield redis
    finally:
        await redis.aclose()


async def close_connections():
    """Release the DB engine and the shared Redis pool on shutdown."""
    global _redis_pool
    await engine.dispose()
    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None
    logger.info("Database and Redis connections closed")
