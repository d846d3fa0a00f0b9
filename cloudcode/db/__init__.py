"""
Database Package

Provides database utilities and connection management:
- WAL-mode SQLite connections
- Schema initialization
"""

from cloudcode.db.schema import init_db
from cloudcode.db.utils import get_sqlite_connection, new_id, row_to_dict, utc_now

__all__ = [
    "get_sqlite_connection",
    "init_db",
    "new_id",
    "row_to_dict",
    "utc_now",
]
