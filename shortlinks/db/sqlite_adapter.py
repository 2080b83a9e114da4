"""
SQLite Database Adapter

This module implements the DatabaseAdapter interface for SQLite.
All SQLite-specific configuration is encapsulated here.

Key characteristics:
- File-based (single .db file)
- Single writer at a time (file locking); concurrent click appends queue
  on the busy timeout instead of failing
- Excellent for reads, limited concurrent writes
"""

from typing import Any

from sqlalchemy.pool import NullPool

from shortlinks.db.interface import DatabaseAdapter

# Seconds a writer waits for the database lock before giving up
BUSY_TIMEOUT_SECONDS = 30


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter implementation.

    Uses NullPool because a file database gains nothing from pooling and each
    store operation opens its own short transaction.
    """

    def get_pool_class(self) -> type[NullPool]:
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        """
        Get SQLite-specific connection arguments.

        - check_same_thread=False: Required for async SQLite operations
        - timeout: busy timeout so concurrent writers serialize
        """
        return {
            "check_same_thread": False,
            "timeout": BUSY_TIMEOUT_SECONDS,
        }

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False  # Set to True only for SQL debugging in development
        }

    def get_dialect_name(self) -> str:
        return "sqlite"
