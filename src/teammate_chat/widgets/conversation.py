"""Scrollable conversation view widget."""

from __future__ import annotations

from textual.containers import VerticalScroll

from .message import MessageBubble


class ConversationView(VerticalScroll):
    """A scrollable container that hosts message bubbles."""

    async def add_message(
        self,
        content: str,
        role: str,
        author: str = "",
        timestamp: str = "",
    ) -> MessageBubble:
        """Create, mount, and scroll to a new message bubble."""
        bubble = MessageBubble(
            content=content,
            role=role,
            author=author,
            timestamp=timestamp,
        )
        bubble.add_class(f"message-{role}")
        await self.mount(bubble)
        self.scroll_end(animate=True)
        return bubble

    async def clear_messages(self) -> None:
        """Remove every bubble from the view."""
        await self.remove_children()
