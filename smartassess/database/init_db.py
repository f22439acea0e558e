"""
Database initialization and connection management.

This module provides functions for:
1. Creating the async engine and session factory
2. Creating or migrating the schema
3. Disposing of the connection pool
"""

from pathlib import Path
from typing import Any, Dict, Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from smartassess.common.exceptions import DatabaseError
from smartassess.common.logger import app_logger
from .base import Base
from . import models  # noqa: F401  (registers the tables on Base.metadata)

logger = app_logger.getChild("database.init_db")

ALEMBIC_DIR = Path(__file__).resolve().parent.parent / "alembic"

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> AsyncEngine:
    """Get the global async engine instance."""
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call initialize_database() first.")
    return _engine


def get_session_factory() -> sessionmaker:
    """Get the global async session factory."""
    if _session_factory is None:
        raise RuntimeError("Database session factory not initialized. Call initialize_database() first.")
    return _session_factory


def get_engine_kwargs(database_url: str, echo: bool, pool_size: int,
                      max_overflow: int, pool_timeout: int) -> Dict[str, Any]:
    """
    Get engine keyword arguments based on database type.
    SQLite does not support the pool sizing options.
    """
    kwargs: Dict[str, Any] = {"echo": echo}
    if not database_url.startswith("sqlite"):
        kwargs.update({
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
            "pool_pre_ping": True,
        })
    return kwargs


async def initialize_database(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    create_tables: bool = False,
) -> AsyncEngine:
    """
    Initialize the async database engine.

    Args:
        database_url: Database connection URL
        echo: Whether to echo SQL statements
        pool_size: Connection pool size
        max_overflow: Maximum number of connections to allow above pool_size
        pool_timeout: Timeout for getting a connection from the pool
        create_tables: Create missing tables after connecting

    Returns:
        AsyncEngine instance

    Raises:
        DatabaseError: If the database cannot be reached
    """
    global _engine, _session_factory

    logger.info(f"Initializing database with URL: {database_url[:10]}... and pool size: {pool_size}")
    _engine = create_async_engine(
        database_url,
        **get_engine_kwargs(database_url, echo, pool_size, max_overflow, pool_timeout)
    )
    _session_factory = sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Failed to initialize async database: {str(e)}")
        await close_database()
        raise DatabaseError("Could not connect to the database", cause=e) from e

    if create_tables:
        await create_schema(_engine)

    logger.info("Database engine initialized successfully")
    return _engine


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Schema ready: {', '.join(sorted(Base.metadata.tables))}")


def run_migrations(database_url: str, revision: str = "head") -> None:
    """
    Upgrade the schema with Alembic.

    Must be called outside a running event loop; the migration environment
    drives its own loop.
    """
    config = Config()
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    config.set_main_option("sqlalchemy.url", database_url)
    logger.info(f"Running migrations up to {revision}")
    command.upgrade(config, revision)


async def close_database() -> None:
    """Close the database engine and all connections."""
    global _engine, _session_factory

    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database engine closed successfully")
