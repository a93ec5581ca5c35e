import asyncio
import logging
import re
from collections.abc import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import get_settings
from app.models.base import Base

logger = logging.getLogger(__name__)
settings = get_settings()


def get_async_database_url(url: str) -> str:
    """Convert database URL to async-compatible format using psycopg driver."""
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    elif url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    elif url.startswith("sqlite://"):
        url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)

    if "channel_binding=" in url:
        url = re.sub(r'[&?]channel_binding=[^&]*', '', url)
        url = url.replace('?&', '?').rstrip('?')

    return url


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine for ``url`` with pool settings suited to the backend."""
    database_url = get_async_database_url(url)
    if database_url.startswith("sqlite"):
        # Writers wait on the file lock instead of failing immediately
        engine = create_async_engine(
            database_url,
            echo=echo,
            connect_args={"timeout": 30},
        )
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        database_url,
        future=True,
        echo=echo,
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=3600,   # Recycle connections after 1 hour
        pool_timeout=settings.database_pool_timeout,
        max_overflow=10,
        connect_args={"connect_timeout": 10},
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=bind, expire_on_commit=False)


logger.info("Creating database engine for %s", get_async_database_url(settings.database_url).split("@")[-1])
engine: AsyncEngine = build_engine(settings.database_url, echo=settings.debug)
AsyncSessionFactory = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionFactory() as session:
        yield session


async def init_database(bind: AsyncEngine = engine) -> None:
    """Create all tables. In production use Alembic migrations instead."""
    import app.models  # noqa: F401 ensure models are registered

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")


async def check_database_connection(bind: AsyncEngine = engine, timeout: float = 5.0) -> bool:
    """Run ``SELECT 1`` against the database with a timeout."""

    async def _probe() -> None:
        async with bind.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            result.fetchone()

    try:
        await asyncio.wait_for(_probe(), timeout=timeout)
        return True
    except asyncio.TimeoutError:
        logger.error("Database connection test timed out after %.0f seconds", timeout)
        return False
    except Exception as exc:
        logger.error("Database connection test failed: %s (%s)", exc, type(exc).__name__)
        return False
