"""
Editor Session Models
"""

import uuid
from dataclasses import dataclass, field
from typing import Optional

from cloudcode.services.code_editor.languages import get_language


def new_tab_id() -> str:
    return f"tab-{uuid.uuid4().hex[:12]}"


@dataclass
class Tab:
    """An open editor buffer for one file; content diverges from the store until saved"""
    file_id: str
    name: str
    path: str
    content: str
    extension: Optional[str] = None
    is_dirty: bool = False
    is_active: bool = False
    id: str = field(default_factory=new_tab_id)
    # Bumped on every edit; lets save() tell whether the buffer changed mid-flight.
    revision: int = 0

    @property
    def language(self) -> str:
        return get_language(self.extension)
