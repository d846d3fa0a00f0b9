"""
Shared dependency injection helpers for FastAPI routes.

Settings and the database path hang off app.state (set by create_app), so
tests can build isolated apps without touching module globals.
"""

import sqlite3
from typing import AsyncIterator

from fastapi import Request

from cloudcode.config import CloudCodeSettings
from cloudcode.db.utils import get_sqlite_connection


def get_app_settings(request: Request) -> CloudCodeSettings:
    return request.app.state.settings


async def get_db(request: Request) -> AsyncIterator[sqlite3.Connection]:
    """One connection per request, closed when the response is done."""
    conn = get_sqlite_connection(request.app.state.settings.database_path, check_same_thread=False)
    try:
        yield conn
    finally:
        conn.close()
