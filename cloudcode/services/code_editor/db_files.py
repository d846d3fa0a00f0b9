"""
Code Editor Database Operations
All file and folder record CRUD operations
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from cloudcode.config import CloudCodeSettings
from cloudcode.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)
from cloudcode.db.utils import new_id, row_to_dict, utc_now

from .languages import get_extension, get_mime_type
from .models import RecordType
from .security import join_path, normalize_parent_path, renamed_path, sanitize_html, validate_file_name

logger = logging.getLogger(__name__)

RECORD_COLUMNS = "id, project_id, name, path, type, extension, mime_type, size, parent_id, created_at, updated_at"


# ============================================================================
# READS
# ============================================================================

def list_files(conn: sqlite3.Connection, project_id: str) -> List[Dict[str, Any]]:
    """All records of a project without content"""
    rows = conn.execute(f"""
        SELECT {RECORD_COLUMNS}
        FROM files
        WHERE project_id = ?
        ORDER BY type DESC, name ASC
    """, (project_id,)).fetchall()
    return [row_to_dict(row) for row in rows]


def count_files(conn: sqlite3.Connection, project_id: str) -> int:
    return conn.execute("SELECT COUNT(*) FROM files WHERE project_id = ?", (project_id,)).fetchone()[0]


def get_file(conn: sqlite3.Connection, file_id: str) -> Optional[Dict[str, Any]]:
    """Record with content and the owning user id, or None"""
    row = conn.execute(f"""
        SELECT f.{RECORD_COLUMNS.replace(', ', ', f.')}, f.content, p.user_id AS owner_id
        FROM files f
        JOIN projects p ON p.id = f.project_id
        WHERE f.id = ?
    """, (file_id,)).fetchone()
    return row_to_dict(row)


def get_file_for_user(conn: sqlite3.Connection, file_id: str, user_id: str) -> Dict[str, Any]:
    """
    Fetch a record the user owns.

    Raises:
        NotFoundError: no such record
        AuthorizationError: record belongs to another user's project
    """
    record = get_file(conn, file_id)
    if not record:
        raise NotFoundError("File", file_id)
    if record.pop("owner_id") != user_id:
        logger.warning(f"User {user_id} denied access to file {file_id}")
        raise AuthorizationError()
    return record


def get_folder_by_path(conn: sqlite3.Connection, project_id: str, path: str) -> Optional[Dict[str, Any]]:
    row = conn.execute(f"""
        SELECT {RECORD_COLUMNS}
        FROM files
        WHERE project_id = ? AND path = ? AND type = 'FOLDER'
    """, (project_id, path)).fetchone()
    return row_to_dict(row)


def path_exists(conn: sqlite3.Connection, project_id: str, path: str, exclude_id: Optional[str] = None) -> bool:
    if exclude_id:
        row = conn.execute(
            "SELECT 1 FROM files WHERE project_id = ? AND path = ? AND id != ?",
            (project_id, path, exclude_id)
        ).fetchone()
    else:
        row = conn.execute(
            "SELECT 1 FROM files WHERE project_id = ? AND path = ?",
            (project_id, path)
        ).fetchone()
    return row is not None


# ============================================================================
# VALIDATION
# ============================================================================

def check_extension(settings: CloudCodeSettings, name: str) -> Optional[str]:
    """Return the name's extension, rejecting ones outside the allow-list."""
    extension = get_extension(name)
    if extension is not None and extension not in settings.allowed_extensions:
        raise ValidationError(f"File extension {extension} is not allowed", field="name")
    return extension


def content_size(content: str) -> int:
    return len(content.encode("utf-8"))


def check_size(settings: CloudCodeSettings, content: str) -> int:
    size = content_size(content)
    if size > settings.max_file_size:
        limit_mb = settings.max_file_size / 1024 / 1024
        raise ValidationError(f"File size exceeds {limit_mb:g}MB limit", field="content")
    return size


# ============================================================================
# WRITES
# ============================================================================

def create_file(
    conn: sqlite3.Connection,
    settings: CloudCodeSettings,
    project_id: str,
    name: str,
    record_type: RecordType = RecordType.FILE,
    parent_path: Optional[str] = None,
    content: Optional[str] = None,
    sanitize: bool = True
) -> Dict[str, Any]:
    """
    Create a file or folder record.

    HTML content is sanitized unless sanitize is False (built-in starter files).

    Raises:
        ValidationError: bad name, extension, parent path or size
        QuotaExceededError: project already holds max_files_per_project records
        ConflictError: a record already exists at the target path
    """
    record_type = RecordType(record_type)
    name = validate_file_name(name)

    if count_files(conn, project_id) >= settings.max_files_per_project:
        raise QuotaExceededError(
            f"Maximum {settings.max_files_per_project} files per project allowed",
            limit=settings.max_files_per_project
        )

    extension = check_extension(settings, name) if record_type == RecordType.FILE else None

    parent = normalize_parent_path(parent_path)
    path = join_path(parent, name)

    if path_exists(conn, project_id, path):
        raise ConflictError("A file with this name already exists", details={"path": path})

    parent_id = None
    if parent != "/":
        folder = get_folder_by_path(conn, project_id, parent)
        if not folder:
            raise ValidationError(f"Parent folder {parent} does not exist", field="parent_path")
        parent_id = folder["id"]

    stored_content = None
    size = 0
    if record_type == RecordType.FILE:
        stored_content = content or ""
        if sanitize and extension == ".html" and stored_content:
            stored_content = sanitize_html(stored_content)
        size = check_size(settings, stored_content)

    file_id = new_id()
    now = utc_now()
    try:
        conn.execute("""
            INSERT INTO files (id, project_id, parent_id, name, path, type, content,
                               extension, mime_type, size, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            file_id, project_id, parent_id, name, path, record_type.value, stored_content,
            extension, get_mime_type(extension) if record_type == RecordType.FILE else None,
            size, now, now
        ))
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise ConflictError("A file with this name already exists", details={"path": path})

    logger.info(f"Created {record_type.value.lower()} {path} in project {project_id}")
    record = get_file(conn, file_id)
    record.pop("owner_id", None)
    return record


def update_file(
    conn: sqlite3.Connection,
    settings: CloudCodeSettings,
    record: Dict[str, Any],
    name: Optional[str] = None,
    content: Optional[str] = None
) -> Dict[str, Any]:
    """
    Rename a record and/or replace its content.

    Renaming a folder rewrites the paths of everything below it.

    Raises:
        ValidationError: bad name/extension, content on a folder, size over the limit
        ConflictError: another record already uses the new path
    """
    file_id = record["id"]
    project_id = record["project_id"]
    is_folder = record["type"] == RecordType.FOLDER.value
    assignments: Dict[str, Any] = {}
    old_path = record["path"]
    new_path = old_path

    if name is not None:
        name = validate_file_name(name)
        if name != record["name"]:
            new_path = renamed_path(old_path, name)
            if path_exists(conn, project_id, new_path, exclude_id=file_id):
                raise ConflictError("A file with this name already exists", details={"path": new_path})

            assignments["name"] = name
            assignments["path"] = new_path
            if not is_folder:
                extension = check_extension(settings, name)
                assignments["extension"] = extension
                assignments["mime_type"] = get_mime_type(extension)

    if content is not None:
        if is_folder:
            raise ValidationError("Folders have no content", field="content")
        assignments["size"] = check_size(settings, content)
        assignments["content"] = content

    if not assignments:
        return record

    assignments["updated_at"] = utc_now()
    columns = ", ".join(f"{column} = ?" for column in assignments)

    try:
        conn.execute(
            f"UPDATE files SET {columns} WHERE id = ?",
            (*assignments.values(), file_id)
        )
        if is_folder and new_path != old_path:
            prefix = old_path + "/"
            conn.execute("""
                UPDATE files
                SET path = ? || substr(path, ?), updated_at = ?
                WHERE project_id = ? AND substr(path, 1, ?) = ?
            """, (new_path + "/", len(prefix) + 1, assignments["updated_at"], project_id, len(prefix), prefix))
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise ConflictError("A file with this name already exists", details={"path": new_path})

    if new_path != old_path:
        logger.info(f"Renamed {old_path} -> {new_path} in project {project_id}")

    updated = get_file(conn, file_id)
    updated.pop("owner_id", None)
    return updated


def delete_file(conn: sqlite3.Connection, file_id: str) -> bool:
    """Delete a record; folder children go with it (ON DELETE CASCADE)"""
    cursor = conn.execute("DELETE FROM files WHERE id = ?", (file_id,))
    conn.commit()
    return cursor.rowcount > 0
