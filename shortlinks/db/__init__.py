"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: Abstract base class for engine configuration
- SQLiteAdapter / PostgreSQLAdapter: dialect-specific implementations
- ShortcodeStore: durable keyed storage of shortcode records and click history
- Session management: engine and session factory creation

To add a new database backend:
1. Create a new adapter class inheriting from DatabaseAdapter
2. Implement all abstract methods
3. Register it in get_database_adapter() in session.py
"""

from shortlinks.db.interface import DatabaseAdapter
from shortlinks.db.session import (
    create_engine_for_url,
    create_session_maker,
    create_tables,
    get_database_adapter,
)
from shortlinks.db.store import ShortcodeStore

__all__ = [
    "DatabaseAdapter",
    "ShortcodeStore",
    "create_engine_for_url",
    "create_session_maker",
    "create_tables",
    "get_database_adapter",
]
