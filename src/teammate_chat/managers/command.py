"""Slash command registry, filtering, and execution.

Commands are registered with a handler and a :class:`SlashCommand`
definition. The composer's ``/`` picker lists them through :meth:`filter`,
and a submitted ``/name args`` line runs through :meth:`execute`.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging

from ..models import SlashCommand

LOGGER = logging.getLogger(__name__)

CommandHandler = Callable[[str], Awaitable[None]]


class CommandManager:
    """Manages slash command registration, lookup, and execution.

    Built-in commands look like ``/help`` or ``/model opus``. Commands loaded
    from configuration may carry a namespace and are addressed by their
    qualified name, e.g. ``/project:review``.
    """

    def __init__(self) -> None:
        self._commands: dict[str, SlashCommand] = {}
        self._handlers: dict[str, CommandHandler] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str = "",
        *,
        namespace: str | None = None,
        accepts_arguments: bool = False,
    ) -> SlashCommand:
        """Register a slash command.

        Args:
            name: Command name (with or without leading /)
            handler: Async function that receives the argument string
            help_text: Description shown in the picker and in /help
            namespace: Optional namespace prefix for the qualified name
            accepts_arguments: Whether the command expects free text after it

        Returns:
            The stored command definition
        """
        normalized_name = name.lstrip("/")
        command = SlashCommand(
            name=normalized_name,
            description=help_text or f"Execute /{normalized_name}",
            namespace=namespace or None,
            accepts_arguments=accepts_arguments,
        )
        key = command.qualified_name
        if key in self._commands:
            LOGGER.warning(
                "command.replaced",
                extra={"event": "command.replaced", "command": key},
            )
        self._commands[key] = command
        self._handlers[key] = handler
        LOGGER.debug("Registered command: /%s", key)
        return command

    def get(self, name: str) -> SlashCommand | None:
        return self._commands.get(name.lstrip("/"))

    def get_commands(self) -> list[SlashCommand]:
        """Return all command definitions sorted by qualified name."""
        return sorted(self._commands.values(), key=lambda cmd: cmd.qualified_name)

    def filter(self, query: str) -> list[SlashCommand]:
        """Return commands matching the picker query.

        Qualified-name prefix matches come first, then commands whose bare
        name or description contains the query.
        """
        needle = query.lstrip("/").lower()
        if not needle:
            return self.get_commands()
        prefix_hits: list[SlashCommand] = []
        other_hits: list[SlashCommand] = []
        for command in self.get_commands():
            qualified = command.qualified_name.lower()
            if qualified.startswith(needle) or command.name.lower().startswith(needle):
                prefix_hits.append(command)
            elif needle in qualified or needle in command.description.lower():
                other_hits.append(command)
        return prefix_hits + other_hits

    @staticmethod
    def split(command_line: str) -> tuple[str, str]:
        """Split ``/name args`` into the bare name and the argument string."""
        parts = command_line.strip().split(maxsplit=1)
        if not parts:
            return "", ""
        return parts[0][1:], parts[1] if len(parts) > 1 else ""

    def is_command(self, text: str) -> bool:
        """Check whether ``text`` starts with a registered ``/command``."""
        if not text.startswith("/"):
            return False
        name, _ = self.split(text)
        return name in self._commands

    async def execute(self, command_line: str) -> bool:
        """Execute a slash command line.

        Args:
            command_line: Full command line (e.g., "/model opus")

        Returns:
            True if command was handled, False otherwise
        """
        if not command_line.startswith("/"):
            return False
        name, args = self.split(command_line)
        handler = self._handlers.get(name)
        if handler is None:
            LOGGER.warning(
                "command.unknown",
                extra={"event": "command.unknown", "command": name},
            )
            return False
        try:
            await handler(args)
        except Exception as exc:
            LOGGER.error(
                "command.failed",
                extra={
                    "event": "command.failed",
                    "command": name,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            raise
        return True
