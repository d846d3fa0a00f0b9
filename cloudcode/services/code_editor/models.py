"""
Code Editor Models
All Pydantic models for the code editor service
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecordType(str, Enum):
    FILE = "FILE"
    FOLDER = "FOLDER"


# ============================================================================
# FILE RECORD MODELS
# ============================================================================

class FileRecord(BaseModel):
    """One row of the flat record store (no content)"""
    model_config = ConfigDict(extra="ignore")

    id: str
    project_id: Optional[str] = None
    name: str
    path: str
    type: RecordType
    extension: Optional[str] = None
    mime_type: Optional[str] = None
    size: int = 0
    parent_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_folder(self) -> bool:
        return self.type == RecordType.FOLDER


class FileWithContent(FileRecord):
    content: Optional[str] = None


class FileCreate(BaseModel):
    project_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    type: RecordType = RecordType.FILE
    parent_path: Optional[str] = Field(None, description="Path of the parent folder, e.g. /src")
    content: Optional[str] = None


class FileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None


class FilesListResponse(BaseModel):
    files: List[FileRecord]


class FileResponse(BaseModel):
    file: FileWithContent


# ============================================================================
# TREE MODELS
# ============================================================================

class FileTreeNode(FileRecord):
    """A record plus its ordered children (None for FILE nodes)"""
    children: Optional[List["FileTreeNode"]] = None

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileTreeNode":
        data = record.model_dump()
        data.pop("content", None)
        return cls(**data, children=[] if record.is_folder else None)


class TreeRow(BaseModel):
    """Flattened rendering hint for one node, in display order"""
    id: str
    name: str
    path: str
    type: RecordType
    parent_id: Optional[str] = None
    depth: int
    indent: int
    has_children: bool = False


class FileTreeResponse(BaseModel):
    nodes: List[FileTreeNode]
    rows: List[TreeRow]


FileTreeNode.model_rebuild()
