"""
Database Session Management with Connection Pooling

This module handles async database connections using SQLAlchemy's async engine.
Uses a database abstraction layer to support different database backends.

Key Features:
- Database abstraction: the adapter is picked from the URL dialect
- Connection pooling: Configured per database type
- Async session factory: one short-lived session per store operation
- Engines are built explicitly and owned by the service container, so tests
  can point the service at a throwaway database
"""

from typing import Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from shortlinks.db.interface import DatabaseAdapter
from shortlinks.db.postgres_adapter import PostgreSQLAdapter
from shortlinks.db.sqlite_adapter import SQLiteAdapter


def get_database_adapter(database_url: str) -> DatabaseAdapter:
    """
    Factory function to get the database adapter for a connection string.

    Args:
        database_url: SQLAlchemy URL (e.g. sqlite+aiosqlite:///./shortlinks.db)

    Returns:
        DatabaseAdapter instance

    Raises:
        ValueError: If the dialect has no adapter
    """
    backend = make_url(database_url).get_backend_name()
    if backend == "sqlite":
        return SQLiteAdapter()
    if backend == "postgresql":
        return PostgreSQLAdapter()
    raise ValueError(f"Unsupported database backend: {backend}")


def create_engine_for_url(
    database_url: str,
    adapter: Optional[DatabaseAdapter] = None,
) -> AsyncEngine:
    adapter = adapter or get_database_adapter(database_url)
    return adapter.create_engine(database_url)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """
    Create the async session factory bound to an engine.

    expire_on_commit=False keeps loaded records usable after the transaction
    that produced them has been committed and the session closed.
    """
    return async_sessionmaker(
        engine,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create any missing tables (zero-setup local runs; production uses Alembic)."""
    # Register table metadata
    from shortlinks.db import models  # noqa: F401

    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
