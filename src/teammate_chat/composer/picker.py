"""Trigger detection and live query tracking for the ``@`` and ``/`` pickers."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

MENTION_TRIGGER = "@"
COMMAND_TRIGGER = "/"


class PickerKind(str, Enum):
    MENTION = "mention"
    FILE_REF = "file_ref"
    COMMAND = "command"

    @property
    def trigger(self) -> str:
        return COMMAND_TRIGGER if self is PickerKind.COMMAND else MENTION_TRIGGER


@dataclass(frozen=True)
class PickerState:
    """The single active picker, or the closed state when ``kind`` is None.

    While open, ``trigger_offset < cursor`` and ``query`` equals the buffer
    text between the trigger character and the cursor.
    """

    kind: PickerKind | None = None
    trigger_offset: int = -1
    query: str = ""

    @property
    def is_open(self) -> bool:
        return self.kind is not None

    @property
    def trigger(self) -> str:
        if self.kind is None:
            return ""
        return self.kind.trigger

    def with_span(self, trigger_offset: int, query: str) -> PickerState:
        return replace(self, trigger_offset=trigger_offset, query=query)


CLOSED = PickerState()


@dataclass(frozen=True)
class PickerContext:
    """What an ``@`` can refer to in the current composer.

    ``agent_context`` identifies the team whose agents can be mentioned;
    ``base_path`` is the directory file references are resolved against.
    Mentions win when both are configured.
    """

    agent_context: str | None = None
    base_path: str | None = None

    @property
    def mention_kind(self) -> PickerKind | None:
        if self.agent_context and self.agent_context.strip():
            return PickerKind.MENTION
        if self.base_path and self.base_path.strip():
            return PickerKind.FILE_REF
        return None


def is_command_position(text: str, offset: int) -> bool:
    """True when a ``/`` at ``offset`` starts a command."""
    return offset == 0 or (offset > 0 and text[offset - 1].isspace())


def detect_trigger(
    previous_text: str, text: str, cursor: int, context: PickerContext
) -> PickerState | None:
    """Return the picker opened by the character just typed before ``cursor``.

    Only edits that grow the buffer can open a picker. The command check runs
    first; both checks look at the same character.
    """
    if len(text) <= len(previous_text) or not 0 < cursor <= len(text):
        return None
    offset = cursor - 1
    inserted = text[offset]
    if inserted == COMMAND_TRIGGER:
        if is_command_position(text, offset):
            return PickerState(PickerKind.COMMAND, offset, "")
        return None
    if inserted == MENTION_TRIGGER:
        kind = context.mention_kind
        if kind is None:
            return None
        return PickerState(kind, offset, "")
    return None


def track_query(state: PickerState, text: str, cursor: int) -> PickerState:
    """Recompute an open picker's span after an edit.

    Scans backward from ``cursor`` for the nearest trigger of the open kind
    that is not separated from the cursor by whitespace. The picker closes
    when none is found.
    """
    if not state.is_open or not 0 < cursor <= len(text):
        return CLOSED
    trigger = state.trigger
    index = cursor - 1
    while index >= 0:
        char = text[index]
        if char.isspace():
            break
        if char == trigger and (
            state.kind is not PickerKind.COMMAND or is_command_position(text, index)
        ):
            return state.with_span(index, text[index + 1 : cursor])
        index -= 1
    return CLOSED
