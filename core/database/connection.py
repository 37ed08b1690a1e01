# Async SQLAlchemy connection management for the account store
import time
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import text
from contextlib import asynccontextmanager
from typing import AsyncIterator

from core.logging import get_database_logger, get_error_logger

db_logger = get_database_logger("database_manager")
error_logger = get_error_logger("database_manager")

# The base class for all SQLAlchemy models
Base = declarative_base()


class DatabaseManager:
    """Manages the connection to the account database"""

    def __init__(self, db_url: str, echo: bool = False, pool_size: int = 5,
                 max_overflow: int = 10, pool_recycle: int = 3600):
        engine_kwargs = {"echo": echo, "pool_pre_ping": True}
        # SQLite uses a static pool without sizing options
        if not db_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_recycle=pool_recycle,
            )
        self._engine = create_async_engine(db_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
            class_=AsyncSession
        )

    async def init(self) -> None:
        """Create tables that do not exist yet"""
        # Import models so they register on Base.metadata
        from core.database import models  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        db_logger.info("Database schema ready")

    async def verify_connection(self) -> bool:
        """Verify database connection is ready"""
        try:
            async with self.get_session() as session:
                await session.execute(text("SELECT 1"))
                return True
        except Exception as e:
            error_logger.error("Database connection verification failed", error=str(e))
            return False

    async def shutdown(self) -> None:
        """Closes the database connection pool"""
        await self._engine.dispose()
        db_logger.info("Database connection pool closed")

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """Provides a session WITHOUT auto-commit; callers own the transaction."""
        session_start_time = time.time()
        async with self._session_factory() as session:
            try:
                yield session
            except Exception as session_error:
                await session.rollback()
                error_logger.error("Database session error with rollback",
                                   error=str(session_error),
                                   session_duration_ms=(time.time() - session_start_time) * 1000)
                raise
