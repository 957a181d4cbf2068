"""Database base class and session management.

This module provides:
- SQLAlchemy base class for declarative models
- A ``Database`` object owning one async engine and its session factory
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ..core.config import Settings


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class Database:
    """
    Owns the async engine for the tutor record store.

    Instances are created explicitly and passed to the store adapter, so tests
    can run against isolated databases.
    """

    def __init__(
        self,
        url: str,
        echo: bool = False,
        pool_size: Optional[int] = None,
        max_overflow: Optional[int] = None,
        pool_timeout: Optional[int] = None,
    ):
        engine_kwargs = {"echo": echo}
        # SQLite drivers use their own pools and reject sizing arguments
        if not url.startswith("sqlite"):
            if pool_size is not None:
                engine_kwargs["pool_size"] = pool_size
            if max_overflow is not None:
                engine_kwargs["max_overflow"] = max_overflow
            if pool_timeout is not None:
                engine_kwargs["pool_timeout"] = pool_timeout

        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self._session_maker = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.DATABASE_URL,
            echo=settings.DEBUG and settings.LOG_LEVEL.upper() == "DEBUG",
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session as an async context manager."""
        async with self._session_maker() as session:
            yield session

    async def create_all(self) -> None:
        """Create all tables."""
        from . import models  # noqa: F401  (registers the tables on Base)

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Close all database connections."""
        await self.engine.dispose()
