"""
Database management for chatline.

Owns the async SQLAlchemy engine and session maker. PostgreSQL via asyncpg
in deployments; SQLite via aiosqlite for local runs and tests.
"""

import threading
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from .config.models import DatabaseConfig
from .exceptions import DatabaseError, create_error_context
from .metadata import metadata
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """
    Thread-safe singleton for database management.

    Call initialize() once with the database section of the configuration;
    the engine is created lazily from it.
    """

    _instance: "DatabaseManager | None" = None
    _lock: threading.Lock = threading.Lock()

    def __init__(self) -> None:
        self.engine: AsyncEngine | None = None
        self.session_maker: async_sessionmaker[AsyncSession] | None = None
        self.database_url: str | None = None

    @classmethod
    def get_instance(cls) -> "DatabaseManager":
        """Get the singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton for testing."""
        with cls._lock:
            cls._instance = None

    def initialize(self, database_config: DatabaseConfig) -> None:
        """
        Create the engine and session maker.

        In-memory SQLite shares a single connection (StaticPool) so every
        session sees the same database.
        """
        if self.engine is not None:
            return

        self.database_url = database_config.async_url
        engine_kwargs: dict[str, Any] = {"echo": database_config.echo}

        if self.database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in self.database_url or self.database_url.rstrip("/").endswith("sqlite+aiosqlite:"):
                engine_kwargs["poolclass"] = StaticPool
            pool_type = "sqlite"
        else:
            engine_kwargs.update(
                {
                    "pool_pre_ping": True,
                    "pool_size": database_config.pool_size,
                    "max_overflow": database_config.max_overflow,
                    "pool_timeout": database_config.pool_timeout,
                }
            )
            pool_type = "AsyncAdaptedQueuePool"

        self.engine = create_async_engine(self.database_url, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database engine created", pool_type=pool_type, dialect=self.engine.dialect.name)

    def get_engine(self) -> AsyncEngine:
        if self.engine is None:
            raise DatabaseError(
                "Database accessed before initialization",
                operation="get_engine",
                user_friendly="Database unavailable",
            )
        return self.engine

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        if self.session_maker is None:
            raise DatabaseError(
                "Database accessed before initialization",
                operation="get_session_maker",
                user_friendly="Database unavailable",
            )
        return self.session_maker

    async def create_schema(self) -> None:
        """Create any missing tables for the registered models."""
        from . import models  # noqa: F401  # registers tables on metadata

        async with self.get_engine().begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Database schema ensured", tables=sorted(metadata.tables))

    async def close(self) -> None:
        """Dispose of the engine and forget it."""
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database connections closed")
        self.engine = None
        self.session_maker = None


def get_database_manager() -> DatabaseManager:
    return DatabaseManager.get_instance()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.

    Yields:
        AsyncSession: Database session for async operations
    """
    session_maker = get_database_manager().get_session_maker()
    async with session_maker() as session:
        try:
            yield session
        except Exception as e:
            logger.error(
                "Database session error",
                context=create_error_context(metadata={"operation": "database_session"}).to_dict(),
                error=str(e),
                error_type=type(e).__name__,
            )
            await session.rollback()
            raise


async def init_db(database_config: DatabaseConfig, create_schema: bool = True) -> DatabaseManager:
    """
    Initialize the engine, verify connectivity and optionally create tables.

    Raises:
        Exception: Whatever the driver raised when the database is unreachable
    """
    manager = get_database_manager()
    manager.initialize(database_config)

    async with manager.get_engine().begin() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("Database connection verified successfully")

    if create_schema:
        await manager.create_schema()
    return manager


async def close_db() -> None:
    """Close database connections."""
    await get_database_manager().close()
