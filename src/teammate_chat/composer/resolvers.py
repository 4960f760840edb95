"""Turn a picker selection back into canonical buffer text."""

from __future__ import annotations

from dataclasses import dataclass

from ..exceptions import ResynchronizationError
from ..models import FileEntry, SlashCommand, TeamMember
from .picker import PickerKind, PickerState
from .tokens import needs_quotes


@dataclass(frozen=True)
class SelectionResult:
    """Buffer contents after a selection was applied."""

    text: str
    cursor: int
    awaiting_arguments: bool = False


def _quoted_if_needed(value: str) -> str:
    return f'"{value}"' if needs_quotes(value) else value


def mention_text(member: TeamMember) -> str:
    """Canonical mention of ``member``: nickname or name, quoted if spaced."""
    return _quoted_if_needed(member.display_name)


def file_reference_text(path: str, base_path: str | None) -> str:
    """Path relative to ``base_path`` when it lies beneath it, else ``path``."""
    base = (base_path or "").rstrip("/")
    if base and path.startswith(base + "/"):
        path = path[len(base) + 1 :]
    return _quoted_if_needed(path)


def command_text(command: SlashCommand) -> str:
    return command.qualified_name


def verify_span(text: str, cursor: int, picker: PickerState) -> None:
    """Check that ``picker`` still describes the buffer around ``cursor``.

    Raises:
        ResynchronizationError: If the trigger or query span no longer matches
    """
    if not picker.is_open:
        raise ResynchronizationError("No picker is open.")
    offset = picker.trigger_offset
    if not 0 <= offset < cursor <= len(text):
        raise ResynchronizationError(
            f"Trigger offset {offset} is outside the buffer (cursor {cursor})."
        )
    if text[offset] != picker.trigger:
        raise ResynchronizationError(
            f"Expected {picker.trigger!r} at offset {offset}, found {text[offset]!r}."
        )
    if any(char.isspace() for char in text[offset + 1 : cursor]):
        raise ResynchronizationError("Picker query spans whitespace.")


def apply_selection(
    text: str,
    cursor: int,
    picker: PickerState,
    canonical: str,
    *,
    awaiting_arguments: bool = False,
) -> SelectionResult:
    """Replace ``text[trigger_offset:cursor]`` with ``trigger + canonical + " "``.

    Text after the cursor is kept. The new cursor sits just after the
    trailing space.
    """
    verify_span(text, cursor, picker)
    offset = picker.trigger_offset
    replacement = f"{picker.trigger}{canonical} "
    return SelectionResult(
        text=text[:offset] + replacement + text[cursor:],
        cursor=offset + 1 + len(canonical) + 1,
        awaiting_arguments=awaiting_arguments,
    )


def _require_kind(picker: PickerState, kind: PickerKind) -> None:
    if picker.kind is not kind:
        raise ResynchronizationError(
            f"Expected an open {kind.value} picker, found {picker.kind}."
        )


def resolve_mention(
    text: str, cursor: int, picker: PickerState, member: TeamMember
) -> SelectionResult:
    _require_kind(picker, PickerKind.MENTION)
    return apply_selection(text, cursor, picker, mention_text(member))


def resolve_file(
    text: str,
    cursor: int,
    picker: PickerState,
    entry: FileEntry,
    base_path: str | None,
) -> SelectionResult:
    _require_kind(picker, PickerKind.FILE_REF)
    return apply_selection(
        text, cursor, picker, file_reference_text(entry.path, base_path)
    )


def resolve_command(
    text: str, cursor: int, picker: PickerState, command: SlashCommand
) -> SelectionResult:
    _require_kind(picker, PickerKind.COMMAND)
    return apply_selection(
        text,
        cursor,
        picker,
        command_text(command),
        awaiting_arguments=command.accepts_arguments,
    )
