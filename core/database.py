"""
Database Management and Configuration.

Sets up the asynchronous database connection for the VidShare API using
SQLAlchemy's asyncio extension and SQLModel metadata.

Key Components:
- `create_engine_for_url`: builds an async engine for SQLite (aiosqlite, used
  in development and tests) or PostgreSQL (asyncpg, production).
- `engine` / `async_session`: the process-wide engine and session factory
  created from `DATABASE_URL`.
- `create_db_and_tables`: startup hook creating every table in the metadata.
- `get_session_factory` / `get_session`: dependency-injection entry points.
  Endpoints depend on `get_session`; anything that outlives the request (the
  video view recorder) takes the factory and opens its own session. Tests
  override `get_session_factory` only.
- `get_database_info`: diagnostic summary for the monitoring endpoint.
"""

from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool
from sqlmodel import SQLModel

# Registers every table on SQLModel.metadata
import core.models  # noqa: F401
from core.config import get_settings
from core.logging_config import get_logger

logger = get_logger(__name__)


def create_engine_for_url(url: str, pooled: bool = True) -> AsyncEngine:
    """Create an async engine configured for the database type in `url`"""
    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=False,  # Set to True for SQL debugging
            poolclass=AsyncAdaptedQueuePool if pooled else NullPool,
        )

    return create_async_engine(
        url,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Validate connections before use
        echo=False,
    )


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


DATABASE_URL = get_settings().database_url

engine = create_engine_for_url(DATABASE_URL)
async_session = create_session_factory(engine)


async def create_db_and_tables(bind: Optional[AsyncEngine] = None):
    """
    Initialize the database and create all tables.
    Called during application startup.
    """
    bind = bind or engine
    try:
        async with bind.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("VidShare database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create VidShare database tables: {e}")
        raise


def get_session_factory() -> async_sessionmaker:
    """Session factory for dependency injection"""
    return async_session


async def get_session(
    factory: async_sessionmaker = Depends(get_session_factory),
) -> AsyncIterator[AsyncSession]:
    """
    Get an async database session for dependency injection.
    """
    async with factory() as session:
        yield session


def _masked_url(url: str) -> str:
    # Hide credentials
    return url.split("@")[1] if "@" in url else url.split("://")[0]


async def get_database_info(
    factory: Optional[async_sessionmaker] = None,
) -> Dict[str, Any]:
    """
    Get basic database information for health checks.
    """
    factory = factory or async_session
    try:
        async with factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            connection_healthy = True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        connection_healthy = False

    return {
        "database_url": _masked_url(DATABASE_URL),
        "connection_healthy": connection_healthy,
        "database_type": "postgresql" if "postgresql" in DATABASE_URL else "sqlite",
    }
