"""
Project Database Operations
Owner-scoped project CRUD, slugs and starter files
"""

import logging
import re
import sqlite3
import time
from typing import Any, Dict, List, Optional

from cloudcode.config import CloudCodeSettings
from cloudcode.core.exceptions import NotFoundError, QuotaExceededError
from cloudcode.db.utils import new_id, row_to_dict, utc_now
from cloudcode.services.code_editor.db_files import create_file
from cloudcode.services.code_editor.models import RecordType

from .templates import starter_files

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "description", "language", "framework", "is_public")


def _project_dict(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    project = row_to_dict(row)
    if project is not None:
        project["is_public"] = bool(project["is_public"])
    return project


def slugify(name: str) -> str:
    """'My First Project!' -> 'my-first-project'"""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "project"


# ============================================================================
# READS
# ============================================================================

def count_projects(conn: sqlite3.Connection, user_id: str) -> int:
    return conn.execute("SELECT COUNT(*) FROM projects WHERE user_id = ?", (user_id,)).fetchone()[0]


def list_projects(conn: sqlite3.Connection, user_id: str) -> List[Dict[str, Any]]:
    """User's projects, most recently opened first, with file counts"""
    rows = conn.execute("""
        SELECT p.*, (SELECT COUNT(*) FROM files f WHERE f.project_id = p.id) AS file_count
        FROM projects p
        WHERE p.user_id = ?
        ORDER BY p.last_opened_at IS NULL, p.last_opened_at DESC, p.created_at DESC
    """, (user_id,)).fetchall()
    return [_project_dict(row) for row in rows]


def get_project_for_user(conn: sqlite3.Connection, project_id: str, user_id: str) -> Dict[str, Any]:
    """
    Fetch a project owned by user_id.

    Raises:
        NotFoundError: missing, or owned by someone else (not distinguished)
    """
    row = conn.execute(
        "SELECT * FROM projects WHERE id = ? AND user_id = ?",
        (project_id, user_id)
    ).fetchone()
    if not row:
        raise NotFoundError("Project", project_id)
    return _project_dict(row)


# ============================================================================
# WRITES
# ============================================================================

def _unique_slug(conn: sqlite3.Connection, user_id: str, name: str) -> str:
    slug = slugify(name)
    taken = conn.execute(
        "SELECT 1 FROM projects WHERE user_id = ? AND slug = ?",
        (user_id, slug)
    ).fetchone()
    if taken:
        slug = f"{slug}-{int(time.time() * 1000)}"
    return slug


def create_project(
    conn: sqlite3.Connection,
    settings: CloudCodeSettings,
    user_id: str,
    name: str,
    description: Optional[str] = None,
    language: str = "javascript",
    framework: Optional[str] = None,
    is_public: bool = False
) -> Dict[str, Any]:
    """
    Create a project and its starter files.

    Raises:
        QuotaExceededError: user already has max_projects_per_user projects
    """
    if count_projects(conn, user_id) >= settings.max_projects_per_user:
        raise QuotaExceededError(
            f"Maximum {settings.max_projects_per_user} projects allowed",
            limit=settings.max_projects_per_user
        )

    project_id = new_id()
    now = utc_now()
    conn.execute("""
        INSERT INTO projects (id, user_id, name, slug, description, language, framework,
                              is_public, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, (
        project_id, user_id, name, _unique_slug(conn, user_id, name), description,
        language, framework, int(is_public), now, now
    ))
    conn.commit()

    for starter in starter_files(language):
        create_file(
            conn, settings, project_id, starter["name"], RecordType.FILE,
            content=starter["content"], sanitize=False
        )

    logger.info(f"Created project {project_id} ({language}) for user {user_id}")
    return get_project_for_user(conn, project_id, user_id)


def touch_project(conn: sqlite3.Connection, project_id: str) -> None:
    conn.execute("UPDATE projects SET last_opened_at = ? WHERE id = ?", (utc_now(), project_id))
    conn.commit()


def update_project(conn: sqlite3.Connection, project: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    """Apply a partial update; unknown keys are ignored"""
    fields = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
    if not fields:
        return project

    if "is_public" in fields:
        fields["is_public"] = int(bool(fields["is_public"]))
    fields["updated_at"] = utc_now()

    columns = ", ".join(f"{column} = ?" for column in fields)
    conn.execute(f"UPDATE projects SET {columns} WHERE id = ?", (*fields.values(), project["id"]))
    conn.commit()
    return get_project_for_user(conn, project["id"], project["user_id"])


def delete_project(conn: sqlite3.Connection, project_id: str) -> bool:
    """Delete a project; its files cascade"""
    cursor = conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
    conn.commit()
    if cursor.rowcount:
        logger.info(f"Deleted project {project_id}")
    return cursor.rowcount > 0
