"""
Editor session library: tabs, panels and the workspace that ties them to a
record source.
"""

from .models import Tab
from .panels import PanelState, Theme
from .record_source import HttpRecordSource, LocalRecordSource, RecordSource
from .state import EditorSession
from .workspace import EditorWorkspace

__all__ = [
    "Tab",
    "PanelState",
    "Theme",
    "RecordSource",
    "LocalRecordSource",
    "HttpRecordSource",
    "EditorSession",
    "EditorWorkspace",
]
