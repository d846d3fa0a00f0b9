"""
File Routes

CRUD on file/folder records. Ownership is checked through the parent project.
"""

import logging
import sqlite3
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, status

from cloudcode.auth.middleware import get_current_user
from cloudcode.config import CloudCodeSettings
from cloudcode.deps import get_app_settings, get_db
from cloudcode.rate_limiter import RateLimit
from cloudcode.services.code_editor import db_files
from cloudcode.services.code_editor.models import (
    FileCreate,
    FileResponse,
    FilesListResponse,
    FileUpdate,
)
from cloudcode.services.projects.db_projects import get_project_for_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/files", tags=["files"])


@router.get("", response_model=FilesListResponse)
async def list_files(
    project_id: str = Query(..., min_length=1),
    user: Dict[str, Any] = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    """List a project's records (no content)"""
    get_project_for_user(conn, project_id, user["id"])
    return {"files": db_files.list_files(conn, project_id)}


@router.post("", response_model=FileResponse, status_code=status.HTTP_201_CREATED)
async def create_file(
    body: FileCreate,
    user: Dict[str, Any] = Depends(get_current_user),
    _: None = Depends(RateLimit("default")),
    settings: CloudCodeSettings = Depends(get_app_settings),
    conn: sqlite3.Connection = Depends(get_db),
):
    """Create a file or folder"""
    get_project_for_user(conn, body.project_id, user["id"])
    record = db_files.create_file(
        conn,
        settings,
        body.project_id,
        body.name,
        body.type,
        parent_path=body.parent_path,
        content=body.content,
    )
    return {"file": record}


@router.get("/{file_id}", response_model=FileResponse)
async def get_file(
    file_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    """Record with content"""
    return {"file": db_files.get_file_for_user(conn, file_id, user["id"])}


@router.patch("/{file_id}", response_model=FileResponse)
async def update_file(
    file_id: str,
    body: FileUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    _: None = Depends(RateLimit("default")),
    settings: CloudCodeSettings = Depends(get_app_settings),
    conn: sqlite3.Connection = Depends(get_db),
):
    """Rename and/or replace content"""
    record = db_files.get_file_for_user(conn, file_id, user["id"])
    updated = db_files.update_file(conn, settings, record, name=body.name, content=body.content)
    return {"file": updated}


@router.delete("/{file_id}")
async def delete_file(
    file_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    _: None = Depends(RateLimit("default")),
    conn: sqlite3.Connection = Depends(get_db),
) -> Dict[str, str]:
    """Delete a file; deleting a folder removes everything below it"""
    db_files.get_file_for_user(conn, file_id, user["id"])
    db_files.delete_file(conn, file_id)
    return {"message": "File deleted"}
