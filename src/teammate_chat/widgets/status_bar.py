"""Status bar widget for agent session and composer settings."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.widgets import Label, Static

STATE_ICONS: dict[str, str] = {
    "idle": "⚪",
    "starting": "🟡",
    "running": "🟢",
}


class StatusBar(Static):
    """Render compact runtime status information.

    Segments (left to right):
        🟢 running  |  Agent: assistant  |  Model: Sonnet  |  Thinking: Auto  |  📎 2
    The attachment segment is hidden while the composer references no images.
    """

    DEFAULT_CSS = """
    StatusBar {
        layout: horizontal;
        height: auto;
    }
    StatusBar Label {
        margin-right: 1;
    }
    StatusBar #status_attachments {
        color: $text-muted;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose child labels for each status segment."""
        yield Label("⚪ idle", id="status_session")
        yield Label("|", id="status_sep1")
        yield Label("Agent: —", id="status_agent")
        yield Label("|", id="status_sep2")
        yield Label("Model: —", id="status_model")
        yield Label("|", id="status_sep3")
        yield Label("Thinking: —", id="status_thinking")
        yield Label("|", id="status_sep4")
        yield Label("", id="status_attachments")

    def on_mount(self) -> None:
        """Cache label references once after the DOM is ready."""
        self._lbl_session = self.query_one("#status_session", Label)
        self._lbl_agent = self.query_one("#status_agent", Label)
        self._lbl_model = self.query_one("#status_model", Label)
        self._lbl_thinking = self.query_one("#status_thinking", Label)
        self._lbl_attachments = self.query_one("#status_attachments", Label)
        self._sep_attachments = self.query_one("#status_sep4", Label)

    def set_status(
        self,
        *,
        session_state: str,
        agent: str,
        model: str,
        thinking_mode: str,
        attachment_count: int = 0,
    ) -> None:
        """Update all status segment labels."""
        icon = STATE_ICONS.get(session_state, "🔴")
        self._lbl_session.update(f"{icon} {session_state}")
        self._lbl_agent.update(f"Agent: {agent}")
        self._lbl_model.update(f"Model: {model}")
        self._lbl_thinking.update(f"Thinking: {thinking_mode}")
        self._lbl_attachments.update(f"📎 {attachment_count}")
        visible = attachment_count > 0
        self._lbl_attachments.display = visible
        self._sep_attachments.display = visible
