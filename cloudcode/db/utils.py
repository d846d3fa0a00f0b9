"""
Database Utilities

Provides centralized database connection management with WAL mode enabled.

Features:
- Automatic WAL mode enablement for all SQLite connections
- Foreign key constraints enabled by default (folder/project cascades rely on it)
- Performance optimizations (synchronous=NORMAL, cache_size)
- UTC timestamp and id helpers shared by the record stores

Usage:
    from cloudcode.db.utils import get_sqlite_connection

    conn = get_sqlite_connection(settings.database_path)
"""

import sqlite3
import uuid
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

logger = logging.getLogger(__name__)


def get_sqlite_connection(
    database: Union[str, Path],
    check_same_thread: bool = True,
    timeout: float = 30.0
) -> sqlite3.Connection:
    """
    Create a SQLite connection with performance optimizations.

    Automatically enables:
    - WAL mode (Write-Ahead Logging) for concurrent reads
    - Foreign key constraints (data integrity)
    - Optimized cache size and synchronous mode

    Args:
        database: Path to SQLite database file
        check_same_thread: Whether to check same thread (default True for safety)
        timeout: Connection timeout in seconds (default 30)

    Returns:
        Configured SQLite connection
    """
    conn = sqlite3.connect(
        str(database),
        check_same_thread=check_same_thread,
        timeout=timeout
    )

    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute("PRAGMA cache_size=-64000")
    conn.execute("PRAGMA temp_store=MEMORY")

    conn.row_factory = sqlite3.Row

    logger.debug(f"SQLite connection created for {database} (WAL mode enabled)")

    return conn


def verify_wal_mode(database: Union[str, Path]) -> bool:
    """Check whether a database file is using WAL mode."""
    try:
        conn = sqlite3.connect(str(database))
        try:
            result = conn.execute("PRAGMA journal_mode").fetchone()
        finally:
            conn.close()
        return result[0].upper() == "WAL"
    except sqlite3.Error as e:
        logger.error(f"Error checking WAL mode for {database}: {e}")
        return False


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(UTC).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


def row_to_dict(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return {key: row[key] for key in row.keys()}
