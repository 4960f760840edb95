"""Plain data records offered by the composer's pickers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TeamMember:
    """An agent the user can address with ``@name``."""

    id: str
    name: str
    nickname: str | None = None
    agent_type: str | None = None
    role: str | None = None
    model: str | None = None

    @property
    def display_name(self) -> str:
        """Nickname when set, otherwise the primary name."""
        return self.nickname or self.name


@dataclass(frozen=True)
class FileEntry:
    """A file below the composer's base path."""

    path: str
    relative_path: str
    is_directory: bool = False


@dataclass(frozen=True)
class SlashCommand:
    """Definition of a ``/`` command."""

    name: str
    description: str = ""
    namespace: str | None = None
    accepts_arguments: bool = False

    @property
    def qualified_name(self) -> str:
        """``namespace:name`` for namespaced commands, otherwise ``name``."""
        if self.namespace:
            return f"{self.namespace}:{self.name}"
        return self.name
