"""Message bubble widget for conversation rendering."""

from __future__ import annotations

from typing import Any

from rich.markdown import Markdown
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Static

ROLE_LABELS: dict[str, str] = {
    "user": "You",
    "assistant": "Assistant",
    "error": "Error",
    "system": "System",
}


class MessageBubble(Vertical):
    """Render a single chat message with a role header and markdown body.

    Agent output arrives in chunks, so the body is rerendered on every
    :meth:`append_content` call.
    """

    DEFAULT_CSS = """
    MessageBubble {
        height: auto;
    }
    MessageBubble > #header-block {
        padding: 0;
    }
    MessageBubble > #content-block {
        height: auto;
    }
    """

    def __init__(
        self,
        content: str,
        role: str,
        author: str = "",
        timestamp: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self.message_content = content
        self.role = role
        self.author = author
        self.timestamp = timestamp
        self.add_class(f"role-{role}")

        self._header_widget: Static | None = None
        self._content_widget: Static | None = None

    @property
    def role_prefix(self) -> str:
        """Return a human-friendly role label."""
        if self.author:
            return self.author
        return ROLE_LABELS.get(self.role, self.role.capitalize())

    def _compose_header(self) -> str:
        if self.timestamp:
            return f"**{self.role_prefix}**  _{self.timestamp}_"
        return f"**{self.role_prefix}**"

    def compose(self) -> ComposeResult:
        self._header_widget = Static(
            Markdown(self._compose_header()), id="header-block"
        )
        self._content_widget = Static("", id="content-block")
        yield self._header_widget
        yield self._content_widget

    def on_mount(self) -> None:
        self._refresh_content()

    def _refresh_content(self) -> None:
        if self._content_widget is None:
            return
        text = self.message_content.rstrip()
        self._content_widget.update(Markdown(text) if text else "")

    def set_content(self, content: str) -> None:
        """Update message content and rerender."""
        self.message_content = content
        self._refresh_content()

    def append_content(self, content_chunk: str) -> None:
        """Append a chunk of agent output and rerender."""
        self.message_content += content_chunk
        self._refresh_content()
