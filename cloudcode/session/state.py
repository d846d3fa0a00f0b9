"""
Editor Session State

Open tabs, the active tab, dirty flags and per-file buffers for one client.

Per-tab lifecycle:

    Clean --(edit)--> Dirty --(save ok)--> Clean
                      Dirty --(save fails)--> Dirty   (buffer kept)

All storage access goes through a RecordSource; those awaits are the only
suspension points, so every other operation completes atomically.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from cloudcode.core.exceptions import CloudCodeException, FetchError, NotFoundError, PersistenceError
from cloudcode.services.code_editor.models import FileRecord

from .models import Tab
from .record_source import RecordSource

logger = logging.getLogger(__name__)


class EditorSession:
    """
    Tab set of one editor client.

    Invariants:
    - at most one tab per file id
    - when tabs exist, exactly one is active and active_tab_id names it
    - when no tabs exist, active_tab_id is None
    """

    def __init__(self, source: RecordSource):
        self.source = source
        self.tabs: List[Tab] = []
        self.active_tab_id: Optional[str] = None
        self.selected_record: Optional[FileRecord] = None
        self._pending_opens: Dict[str, "asyncio.Task[Tab]"] = {}
        # Record behind each open tab, keyed by file id.
        self._records: Dict[str, FileRecord] = {}

    # ========================================================================
    # QUERIES
    # ========================================================================

    @property
    def active_tab(self) -> Optional[Tab]:
        return self.get_tab(self.active_tab_id) if self.active_tab_id else None

    @property
    def dirty_tabs(self) -> List[Tab]:
        return [tab for tab in self.tabs if tab.is_dirty]

    def get_tab(self, tab_id: str) -> Optional[Tab]:
        return next((tab for tab in self.tabs if tab.id == tab_id), None)

    def find_tab_by_file(self, file_id: str) -> Optional[Tab]:
        return next((tab for tab in self.tabs if tab.file_id == file_id), None)

    # ========================================================================
    # TABS
    # ========================================================================

    def _activate(self, tab_id: str) -> None:
        for tab in self.tabs:
            tab.is_active = tab.id == tab_id
            if tab.is_active:
                self.selected_record = self._records.get(tab.file_id, self.selected_record)
        self.active_tab_id = tab_id

    async def open_file(self, record: FileRecord) -> Optional[Tab]:
        """
        Open a file in a tab, or focus the tab it already has.

        Folders are ignored (returns None). Concurrent opens of the same file
        share one fetch and get the same tab.

        Raises:
            NotFoundError: the record no longer exists
            FetchError: content could not be loaded; no tab is created
        """
        if record.is_folder:
            return None

        existing = self.find_tab_by_file(record.id)
        if existing:
            self._records[record.id] = record
            self._activate(existing.id)
            self.selected_record = record
            return existing

        pending = self._pending_opens.get(record.id)
        if pending is not None:
            return await pending

        task = asyncio.ensure_future(self._open_new(record))
        self._pending_opens[record.id] = task
        try:
            return await task
        finally:
            self._pending_opens.pop(record.id, None)

    async def _open_new(self, record: FileRecord) -> Tab:
        try:
            fetched = await self.source.get(record.id)
        except (NotFoundError, FetchError):
            logger.warning(f"Could not open {record.path}")
            raise
        except CloudCodeException as e:
            logger.warning(f"Could not open {record.path}: {e.message}")
            raise FetchError(e.message, details={"code": e.code}) from e

        tab = Tab(
            file_id=record.id,
            name=record.name,
            path=record.path,
            content=fetched.content or "",
            extension=record.extension,
        )
        self.tabs.append(tab)
        self._records[record.id] = record
        self._activate(tab.id)
        self.selected_record = record
        return tab

    def set_active_tab(self, tab_id: str) -> None:
        """Make tab_id the only active tab; unknown ids are ignored"""
        if self.get_tab(tab_id) is None:
            return
        self._activate(tab_id)

    def update_content(self, tab_id: str, content: str) -> None:
        """Replace a tab's buffer and mark it dirty; unknown ids are ignored"""
        tab = self.get_tab(tab_id)
        if tab is None:
            return
        tab.content = content
        tab.is_dirty = True
        tab.revision += 1

    def close_tab(self, tab_id: str) -> None:
        """
        Close a tab without saving.

        If it was active, focus moves to the tab now at the same position
        (or the last tab when it was last) and selected_record follows it.
        """
        index = next((i for i, tab in enumerate(self.tabs) if tab.id == tab_id), None)
        if index is None:
            return

        removed = self.tabs.pop(index)
        self._records.pop(removed.file_id, None)
        if removed.is_dirty:
            logger.debug(f"Closed {removed.path} with unsaved changes")

        if not self.tabs:
            self.active_tab_id = None
            self.selected_record = None
            return

        if removed.id == self.active_tab_id:
            self._activate(self.tabs[min(index, len(self.tabs) - 1)].id)
        elif self.selected_record is not None and self.selected_record.id == removed.file_id:
            active = self.active_tab
            self.selected_record = self._records.get(active.file_id) if active else None

    # ========================================================================
    # PERSISTENCE
    # ========================================================================

    async def save(self, tab_id: str) -> bool:
        """
        Flush a dirty tab to the record source.

        Returns False when there was nothing to save. The tab stays dirty when
        the save fails or when it was edited again while the save was running.

        Raises:
            PersistenceError: the store rejected or failed the write
        """
        tab = self.get_tab(tab_id)
        if tab is None or not tab.is_dirty:
            return False

        revision = tab.revision
        try:
            await self.source.update(tab.file_id, content=tab.content)
        except PersistenceError:
            logger.warning(f"Save failed for {tab.path}")
            raise
        except CloudCodeException as e:
            logger.warning(f"Save failed for {tab.path}: {e.message}")
            raise PersistenceError(e.message, details={"code": e.code, **e.details}) from e

        if tab.revision == revision:
            tab.is_dirty = False
        return True

    async def save_all(self) -> Dict[str, PersistenceError]:
        """Save every dirty tab; failures are collected by tab id instead of raised"""
        failures: Dict[str, PersistenceError] = {}
        for tab in list(self.dirty_tabs):
            try:
                await self.save(tab.id)
            except PersistenceError as e:
                failures[tab.id] = e
        return failures

    # ========================================================================
    # RECORD CHANGES
    # ========================================================================

    def forget_file(self, file_id: str) -> None:
        """Close the tab of a record that no longer exists"""
        tab = self.find_tab_by_file(file_id)
        if tab is not None:
            self.close_tab(tab.id)
        if self.selected_record is not None and self.selected_record.id == file_id:
            self.selected_record = None

    def rename_file(self, record: FileRecord) -> None:
        """Carry a record's new name/path into its open tab"""
        tab = self.find_tab_by_file(record.id)
        if tab is not None:
            self._records[record.id] = record
            tab.name = record.name
            tab.path = record.path
            tab.extension = record.extension
        if self.selected_record is not None and self.selected_record.id == record.id:
            self.selected_record = record
