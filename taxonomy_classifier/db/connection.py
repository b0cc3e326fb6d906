"""
Database Connection Pool Management
====================================

Async connection pool management using SQLAlchemy AsyncIO with asyncpg.
Provides session management and health checks for the taxonomy
embeddings store.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool

from taxonomy_classifier.config.settings import Settings, get_settings
from taxonomy_classifier.utils.errors import DatabaseError
from taxonomy_classifier.utils.logger import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """
    Manages async database connections with connection pooling.

    Owned by a ClassifierContext; one instance per context rather
    than a process-wide singleton.

    Usage:
        db = DatabaseManager(settings)
        await db.initialize()
        async with db.session() as session:
            result = await session.execute(...)
        await db.close()
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    async def initialize(self) -> "DatabaseManager":
        """
        Initialize the database connection pool.

        Raises:
            DatabaseError: If connection initialization fails
        """
        if self._engine is not None:
            logger.debug("Database already initialized, reusing connection pool")
            return self

        settings = self._settings

        try:
            logger.info(
                "Initializing database connection pool",
                pool_min=settings.db_pool_min,
                pool_max=settings.db_pool_max,
            )

            # pgvector values are passed through CAST in SQL, no type registration needed
            self._engine = create_async_engine(
                settings.database_url,
                echo=False,
                pool_size=settings.db_pool_min,
                max_overflow=settings.db_pool_max - settings.db_pool_min,
                pool_recycle=3600,
                pool_pre_ping=True,
                poolclass=AsyncAdaptedQueuePool,
                connect_args={
                    "server_settings": {"jit": "off"},  # JIT slows pgvector scans
                },
            )

            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autocommit=False,
                autoflush=False,
            )

            logger.info("Database connection pool initialized successfully")
            return self

        except Exception as e:
            logger.error("Failed to initialize database", error=str(e))
            raise DatabaseError(
                message="Database initialization failed",
                details={"error": str(e)},
            ) from e

    async def close(self) -> None:
        """Close the connection pool. Safe to call more than once."""
        if self._engine is None:
            logger.debug("Database not initialized, nothing to close")
            return

        try:
            logger.info("Closing database connection pool")
            await self._engine.dispose()
            logger.info("Database connection pool closed")
        except Exception as e:
            logger.error("Error closing database connection pool", error=str(e))
            raise DatabaseError(
                message="Failed to close database connection",
                details={"error": str(e)},
            ) from e
        finally:
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get an async database session.

        Raises:
            DatabaseError: If database is not initialized
        """
        if self._session_factory is None:
            raise DatabaseError(
                message="Database not initialized",
                details={"hint": "Call DatabaseManager.initialize() first"},
            )

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error("Database session error, rolled back", error=str(e))
                raise

    async def health_check(self) -> dict:
        """
        Check database connection health.

        Returns:
            {"status": "healthy", "latency_ms": 5.2} or an error status
        """
        if self._engine is None:
            return {"status": "not_initialized", "error": "Database not initialized"}

        start = time.perf_counter()

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

            latency = (time.perf_counter() - start) * 1000
            return {"status": "healthy", "latency_ms": round(latency, 2)}

        except Exception as e:
            return {"status": "unhealthy", "error": str(e)}
