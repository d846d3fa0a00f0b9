"""
Project Models
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from cloudcode.services.code_editor.models import FileRecord


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    language: str = Field(default="javascript", max_length=50)
    framework: Optional[str] = Field(None, max_length=50)
    is_public: bool = False


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    language: Optional[str] = Field(None, max_length=50)
    framework: Optional[str] = Field(None, max_length=50)
    is_public: Optional[bool] = None


class ProjectResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    language: str
    framework: Optional[str] = None
    is_public: bool
    created_at: str
    updated_at: str
    last_opened_at: Optional[str] = None
    file_count: Optional[int] = None


class ProjectsListResponse(BaseModel):
    projects: List[ProjectResponse]


class ProjectDetailResponse(BaseModel):
    project: ProjectResponse
    files: List[FileRecord]
