"""
Code Editor Service Package

Modules:
- models: Pydantic models for records, tree nodes and requests
- db_files: file/folder record CRUD
- file_tree: flat records -> sorted hierarchy
- security: name/path validation, HTML sanitization
- languages: extension -> editor language / MIME type
"""

from .file_tree import build_file_tree, collect_descendant_ids, flatten_tree
from .models import FileRecord, FileTreeNode, FileWithContent, RecordType, TreeRow

__all__ = [
    "build_file_tree",
    "collect_descendant_ids",
    "flatten_tree",
    "FileRecord",
    "FileTreeNode",
    "FileWithContent",
    "RecordType",
    "TreeRow",
]
