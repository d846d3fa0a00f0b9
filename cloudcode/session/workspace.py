"""
Editor Workspace

Composition root for one open project: records from a RecordSource, the tree
derived from them, an EditorSession and the PanelState. Tree-consumer intents
(select, create, rename, delete) go through here so the tree and the open
tabs stay consistent with the store.
"""

import logging
from typing import List, Optional

from cloudcode.services.code_editor.file_tree import build_file_tree, collect_descendant_ids, flatten_tree
from cloudcode.services.code_editor.models import FileRecord, FileTreeNode, RecordType, TreeRow

from .models import Tab
from .panels import PanelState
from .record_source import RecordSource
from .state import EditorSession

logger = logging.getLogger(__name__)


def _plain_record(node: FileRecord) -> FileRecord:
    if isinstance(node, FileTreeNode):
        return FileRecord.model_validate(node.model_dump(exclude={"children"}))
    return node


class EditorWorkspace:
    """
    Usage:
        workspace = EditorWorkspace(LocalRecordSource(settings, user_id), project_id)
        await workspace.load()
        tab = await workspace.select(workspace.tree[0])
        workspace.session.update_content(tab.id, "...")
        await workspace.session.save(tab.id)
    """

    def __init__(self, source: RecordSource, project_id: str):
        self.source = source
        self.project_id = project_id
        self.records: List[FileRecord] = []
        self.tree: List[FileTreeNode] = []
        self.rows: List[TreeRow] = []
        self.session = EditorSession(source)
        self.panels = PanelState()

    async def load(self) -> List[FileTreeNode]:
        """List the project's records and rebuild the tree"""
        self.records = await self.source.list(self.project_id)
        self.tree = build_file_tree(self.records)
        self.rows = flatten_tree(self.tree)
        self._sync_tabs()
        logger.debug(f"Loaded {len(self.records)} records for project {self.project_id}")
        return self.tree

    async def refresh(self) -> List[FileTreeNode]:
        return await self.load()

    def _sync_tabs(self) -> None:
        # Folder renames move every descendant; open tabs follow the stored paths.
        by_id = {record.id: record for record in self.records}
        for tab in self.session.tabs:
            record = by_id.get(tab.file_id)
            if record is not None and record.path != tab.path:
                self.session.rename_file(record)

    # ========================================================================
    # TREE INTENTS
    # ========================================================================

    async def select(self, node: FileRecord) -> Optional[Tab]:
        """Open a file node in a tab; selecting a folder only marks it selected"""
        record = _plain_record(node)
        if record.is_folder:
            self.session.selected_record = record
            return None
        return await self.session.open_file(record)

    async def create(
        self,
        parent_path: Optional[str],
        name: str,
        type: RecordType = RecordType.FILE,
        content: Optional[str] = None,
    ) -> FileRecord:
        record = await self.source.create(
            self.project_id, name, type, content=content, parent_path=parent_path
        )
        await self.refresh()
        return record

    async def rename(self, node: FileRecord, new_name: str) -> FileRecord:
        record = await self.source.update(node.id, name=new_name)
        self.session.rename_file(record)
        await self.refresh()
        return record

    async def delete(self, node: FileRecord) -> None:
        """Delete a record; tabs for it and everything below it are closed"""
        removed = collect_descendant_ids(self.records, node.id)
        await self.source.delete(node.id)
        for file_id in removed:
            self.session.forget_file(file_id)
        await self.refresh()
