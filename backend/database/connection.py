from functools import lru_cache
import logging

from sqlalchemy.ext.asyncio import (
    create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text

from config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _connect_args(database_url: str) -> dict:
    """Driver-level options; asyncpg gets the statement timeout."""
    if database_url.startswith("postgresql+asyncpg"):
        timeout_ms = get_settings().DB_STATEMENT_TIMEOUT_MS
        return {"server_settings": {"statement_timeout": str(timeout_ms)}}
    return {}


@lru_cache()
def get_engine() -> AsyncEngine:
    """Create the async engine on first use"""
    settings = get_settings()
    if not settings.DATABASE_URL:
        raise ValueError("DATABASE_URL environment variable is not set")

    kwargs = {}
    if settings.DATABASE_URL.startswith("postgresql"):
        kwargs.update(pool_size=settings.DB_POOL_SIZE, max_overflow=settings.DB_MAX_OVERFLOW)

    return create_async_engine(
        settings.DATABASE_URL,
        echo=False,
        pool_pre_ping=True,
        connect_args=_connect_args(settings.DATABASE_URL),
        **kwargs,
    )


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory with the settings every engine component expects"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@lru_cache()
def get_session_factory() -> async_sessionmaker:
    return make_session_factory(get_engine())


async def get_db():
    """Dependency to get database session"""
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """Initialize database connection and log the visible tables"""
    try:
        async with get_engine().begin() as conn:
            await conn.execute(text("SELECT 1"))
            logger.info("Database connection successful")

            tables = await conn.run_sync(
                lambda sync_conn: sync_conn.dialect.get_table_names(sync_conn)
            )
            logger.info(f"Available tables: {tables}")
            return True
    except Exception as e:
        logger.error(f"Database initialization error: {e}")
        raise
