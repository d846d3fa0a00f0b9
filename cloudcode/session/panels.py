"""
Panel Orchestrator

Visibility of the explorer, preview and AI panels, and which tab feeds them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .models import Tab
from .state import EditorSession


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"


@dataclass
class PanelState:
    """Three independent visibility flags plus the editor theme"""
    explorer: bool = True
    preview: bool = False
    ai: bool = False
    theme: Theme = Theme.DARK

    def toggle_explorer(self) -> None:
        self.explorer = not self.explorer

    def toggle_preview(self) -> None:
        self.preview = not self.preview

    def toggle_ai(self) -> None:
        self.ai = not self.ai

    def set_explorer(self, visible: bool) -> None:
        self.explorer = visible

    def set_preview(self, visible: bool) -> None:
        self.preview = visible

    def set_ai(self, visible: bool) -> None:
        self.ai = visible

    def set_theme(self, theme: str) -> None:
        self.theme = Theme(theme)

    def toggle_theme(self) -> None:
        self.theme = Theme.LIGHT if self.theme == Theme.DARK else Theme.DARK

    def preview_tab(self, session: EditorSession) -> Optional[Tab]:
        """Tab rendered by the preview panel, None while the panel is hidden"""
        return session.active_tab if self.preview else None

    def ai_tab(self, session: EditorSession) -> Optional[Tab]:
        """Tab whose code is handed to the AI panel, None while it is hidden"""
        return session.active_tab if self.ai else None
