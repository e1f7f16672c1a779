"""
PostgreSQL Database Setup

Configures SQLAlchemy async engine, session factory, and base models.

Features:
    - Async SQLAlchemy with asyncpg
    - Connection pooling
    - Session management
    - Base model with common fields
"""

from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager
import logging

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import DateTime, func
from datetime import datetime

from campaign_engine.core.config import DatabaseConfig, get_settings


logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class Database:
    """
    Database connection manager

    Handles engine creation, session management, and connection pooling.

    Example:
        >>> db = Database(settings.database)
        >>> await db.connect()
        >>> async with db.session() as session:
        ...     result = await session.execute(query)
    """

    def __init__(self, config: Optional[DatabaseConfig] = None):
        """
        Initialize database

        Args:
            config: Connection settings (defaults to application settings)
        """
        self.config = config or get_settings().database
        self.engine = None
        self.session_factory = None

    async def connect(self) -> None:
        """Create database engine and session factory"""
        if self.engine:
            return

        url = self.config.url
        obfuscated_url = url.replace(self.config.password, "****")
        logger.info(f"Connecting to database: {obfuscated_url}")

        self.engine = create_async_engine(
            url,
            echo=self.config.echo,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info("Database connected")

    async def disconnect(self) -> None:
        """Close database connections"""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            logger.info("Database disconnected")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get database session context manager

        Yields:
            AsyncSession for database operations
        """
        if not self.session_factory:
            raise RuntimeError("Database not connected")

        async with self.session_factory() as session:
            yield session
