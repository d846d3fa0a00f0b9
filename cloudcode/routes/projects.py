"""
Project Routes

Owner-scoped project CRUD plus the derived file tree for the explorer.
"""

import logging
import sqlite3
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from cloudcode.auth.middleware import get_current_user
from cloudcode.config import CloudCodeSettings
from cloudcode.deps import get_app_settings, get_db
from cloudcode.rate_limiter import RateLimit
from cloudcode.services.code_editor.db_files import list_files
from cloudcode.services.code_editor.file_tree import build_file_tree, flatten_tree
from cloudcode.services.code_editor.models import FileTreeResponse
from cloudcode.services.projects import db_projects
from cloudcode.services.projects.models import (
    ProjectCreate,
    ProjectDetailResponse,
    ProjectResponse,
    ProjectsListResponse,
    ProjectUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/projects", tags=["projects"])


@router.get("", response_model=ProjectsListResponse)
async def list_projects(
    user: Dict[str, Any] = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    """List the user's projects, most recently opened first"""
    return {"projects": db_projects.list_projects(conn, user["id"])}


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectCreate,
    user: Dict[str, Any] = Depends(get_current_user),
    _: None = Depends(RateLimit("default")),
    settings: CloudCodeSettings = Depends(get_app_settings),
    conn: sqlite3.Connection = Depends(get_db),
):
    """Create a project with starter files for its language"""
    return db_projects.create_project(
        conn,
        settings,
        user["id"],
        body.name,
        description=body.description,
        language=body.language,
        framework=body.framework,
        is_public=body.is_public,
    )


@router.get("/{project_id}", response_model=ProjectDetailResponse)
async def get_project(
    project_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    """Project metadata plus its flat record list; marks the project as opened"""
    project = db_projects.get_project_for_user(conn, project_id, user["id"])
    db_projects.touch_project(conn, project_id)
    project = db_projects.get_project_for_user(conn, project_id, user["id"])
    return {"project": project, "files": list_files(conn, project_id)}


@router.get("/{project_id}/tree", response_model=FileTreeResponse)
async def get_project_tree(
    project_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    """Nested tree (folders first) and flattened rows for the explorer"""
    db_projects.get_project_for_user(conn, project_id, user["id"])
    nodes = build_file_tree(list_files(conn, project_id))
    return {"nodes": nodes, "rows": flatten_tree(nodes)}


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    body: ProjectUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    _: None = Depends(RateLimit("default")),
    conn: sqlite3.Connection = Depends(get_db),
):
    project = db_projects.get_project_for_user(conn, project_id, user["id"])
    return db_projects.update_project(conn, project, body.model_dump(exclude_unset=True))


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    _: None = Depends(RateLimit("default")),
    conn: sqlite3.Connection = Depends(get_db),
) -> Dict[str, str]:
    """Delete a project and all its files"""
    db_projects.get_project_for_user(conn, project_id, user["id"])
    db_projects.delete_project(conn, project_id)
    return {"message": "Project deleted"}
