"""
Database connection management for the relational store.
"""

import os
import logging
import pathlib
from typing import Any, AsyncGenerator, Dict, Optional
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
    AsyncEngine,
)

logger = logging.getLogger(__name__)

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_database_url(url: Optional[str] = None) -> str:
    """Resolve the async database URL, defaulting to a local SQLite file."""
    db_url = url or os.getenv("DATABASE_URL")

    if db_url:
        # Convert postgresql:// to postgresql+asyncpg:// for async
        if db_url.startswith("postgresql://"):
            db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif db_url.startswith("postgres://"):
            db_url = db_url.replace("postgres://", "postgresql+asyncpg://", 1)
        return db_url

    db_path = pathlib.Path.cwd() / "dentalhub.db"
    return f"sqlite+aiosqlite:///{db_path}"


def _engine_options(db_url: str, echo: bool) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    if not db_url.startswith("sqlite"):
        options.update(pool_size=10, max_overflow=20)
    return options


async def init_database(url: Optional[str] = None, *, echo: Optional[bool] = None) -> None:
    """Create the engine and session factory, then create missing tables."""
    global _engine, _session_factory

    db_url = get_database_url(url)
    logger.info(
        "Initializing database connection: %s",
        db_url.split("@")[-1] if "@" in db_url else db_url,
    )

    if echo is None:
        echo = os.getenv("DEBUG", "False").lower() == "true"
    _engine = create_async_engine(db_url, **_engine_options(db_url, echo))

    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Imported here so the models register on Base before create_all
    from .models import Base
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database initialized successfully")


async def close_database() -> None:
    """Dispose of the engine."""
    global _engine, _session_factory

    if _engine:
        await _engine.dispose()
        logger.info("Database connection closed")
    _engine = None
    _session_factory = None


def is_initialized() -> bool:
    return _session_factory is not None


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session context manager."""
    if not _session_factory:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_database() -> None:
    """Run ``SELECT 1``; raises when the store is unreachable."""
    async with get_db_session() as session:
        await session.execute(text("SELECT 1"))
