"""
Code Editor File Tree Builder
Hierarchical file tree construction from the flat record list
"""

import logging
import unicodedata
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Union

from .models import FileRecord, FileTreeNode, RecordType, TreeRow

logger = logging.getLogger(__name__)

INDENT_STEP_PX = 12
INDENT_BASE_PX = 8

RecordLike = Union[FileRecord, Mapping[str, Any]]


def _as_record(record: RecordLike) -> FileRecord:
    if isinstance(record, FileRecord):
        return record
    return FileRecord.model_validate(dict(record))


def _collation_key(name: str) -> str:
    """Case- and accent-insensitive key, so "éclair" sorts between "eagle" and "zeta"."""
    decomposed = unicodedata.normalize("NFKD", name.casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _sort_key(node: FileTreeNode):
    return (0 if node.type == RecordType.FOLDER else 1, _collation_key(node.name), node.name.casefold(), node.name)


def _sort_nodes(nodes: List[FileTreeNode]) -> None:
    nodes.sort(key=_sort_key)
    for node in nodes:
        if node.children:
            _sort_nodes(node.children)


def _in_cycle(record_id: str, parents: Dict[str, Optional[str]]) -> bool:
    """True when following parent_id links from record_id comes back to it."""
    seen: Set[str] = set()
    current = parents.get(record_id)
    while current is not None and current in parents:
        if current == record_id:
            return True
        if current in seen:
            return False
        seen.add(current)
        current = parents[current]
    return False


def build_file_tree(records: Iterable[RecordLike]) -> List[FileTreeNode]:
    """
    Build hierarchical file tree from flat record list

    Records are attached to their parent folder when it is present; anything
    else (missing parent, parent that is a FILE, parent cycle) becomes a root.
    Siblings are ordered FOLDER before FILE, then by case-insensitive name.
    A fresh tree is returned on every call; inputs are not modified.
    """
    ordered: List[FileRecord] = []
    nodes: Dict[str, FileTreeNode] = {}

    for raw in records:
        record = _as_record(raw)
        if record.id in nodes:
            logger.warning(f"Duplicate record id {record.id} ignored while building tree")
            continue
        ordered.append(record)
        nodes[record.id] = FileTreeNode.from_record(record)

    parents = {record.id: record.parent_id for record in ordered}
    roots: List[FileTreeNode] = []

    for record in ordered:
        node = nodes[record.id]
        parent = nodes.get(record.parent_id) if record.parent_id else None

        if parent is not None and parent.type == RecordType.FOLDER and not _in_cycle(record.id, parents):
            parent.children.append(node)
            continue

        if record.parent_id:
            logger.debug(f"Promoting orphaned record {record.id} ({record.path}) to root")
        roots.append(node)

    _sort_nodes(roots)
    return roots


def flatten_tree(nodes: List[FileTreeNode], depth: int = 0) -> List[TreeRow]:
    """Depth-first rows in display order, with the explorer's indentation."""
    rows: List[TreeRow] = []
    for node in nodes:
        rows.append(TreeRow(
            id=node.id,
            name=node.name,
            path=node.path,
            type=node.type,
            parent_id=node.parent_id,
            depth=depth,
            indent=depth * INDENT_STEP_PX + INDENT_BASE_PX,
            has_children=bool(node.children),
        ))
        if node.children:
            rows.extend(flatten_tree(node.children, depth + 1))
    return rows


def collect_descendant_ids(records: Iterable[RecordLike], root_id: str) -> Set[str]:
    """Ids of root_id and every record below it (by parent_id links)."""
    children: Dict[str, List[str]] = {}
    for raw in records:
        record = _as_record(raw)
        if record.parent_id:
            children.setdefault(record.parent_id, []).append(record.id)

    found: Set[str] = set()
    stack = [root_id]
    while stack:
        current = stack.pop()
        if current in found:
            continue
        found.add(current)
        stack.extend(children.get(current, []))
    return found
