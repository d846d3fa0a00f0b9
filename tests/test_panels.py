"""
Tests for PanelState visibility flags and panel-to-tab routing.
"""

import pytest

from cloudcode.session import EditorSession, PanelState, Theme


class TestPanelState:
    """Test independent visibility flags"""

    def test_defaults(self):
        """Explorer visible, preview and AI hidden, dark theme"""
        panels = PanelState()

        assert panels.explorer is True
        assert panels.preview is False
        assert panels.ai is False
        assert panels.theme == Theme.DARK

    def test_toggles_touch_one_flag(self):
        panels = PanelState()

        panels.toggle_preview()
        assert (panels.explorer, panels.preview, panels.ai) == (True, True, False)

        panels.toggle_explorer()
        assert (panels.explorer, panels.preview, panels.ai) == (False, True, False)

        panels.toggle_ai()
        panels.toggle_preview()
        assert (panels.explorer, panels.preview, panels.ai) == (False, False, True)

    def test_setters(self):
        panels = PanelState()

        panels.set_ai(True)
        panels.set_ai(True)
        panels.set_explorer(False)

        assert panels.ai is True
        assert panels.explorer is False

    def test_theme(self):
        panels = PanelState()

        panels.toggle_theme()
        assert panels.theme == Theme.LIGHT

        panels.set_theme("dark")
        assert panels.theme == Theme.DARK

    def test_unknown_theme_rejected(self):
        with pytest.raises(ValueError):
            PanelState().set_theme("solarized")


class TestPanelTabs:
    """Test which tab feeds the preview and AI panels"""

    @pytest.mark.asyncio
    async def test_hidden_panels_get_no_tab(self, source):
        session = EditorSession(source)
        await session.open_file(source.record("2"))
        panels = PanelState()

        assert panels.preview_tab(session) is None
        assert panels.ai_tab(session) is None

    @pytest.mark.asyncio
    async def test_visible_panels_follow_active_tab(self, source):
        session = EditorSession(source)
        first = await session.open_file(source.record("2"))
        second = await session.open_file(source.record("3"))
        panels = PanelState(preview=True, ai=True)

        assert panels.preview_tab(session) is second

        session.set_active_tab(first.id)
        assert panels.preview_tab(session) is first
        assert panels.ai_tab(session) is first

    def test_visible_panel_without_tabs(self, source):
        panels = PanelState(preview=True)
        assert panels.preview_tab(EditorSession(source)) is None
