# backend/parley/db.py
"""
Async database plumbing for conversation snapshots.

The engine URL comes from PARLEY_DATABASE_URL (see parley.config).
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession,
                                    async_sessionmaker, create_async_engine)

from .config import DATABASE_URL
from .models import Base


def make_engine(url: str | None = None, **kwargs) -> AsyncEngine:
    """Create the async SQLAlchemy engine (aiosqlite by default)."""
    return create_async_engine(
        url or DATABASE_URL,
        echo=False,  # True if you want to see SQL
        **kwargs,
    )


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create any missing tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
