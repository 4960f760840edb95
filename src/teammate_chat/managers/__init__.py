"""Manager classes that keep app concerns out of the Textual app class.

Available managers:
- CommandManager: Slash command registration, filtering, and execution
"""

from __future__ import annotations

from .command import CommandHandler, CommandManager

__all__ = ["CommandHandler", "CommandManager"]
