"""Composition controller: the single entry point for composer edits."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
import logging
from typing import TYPE_CHECKING, Any

from ..catalog import (
    DEFAULT_MODEL,
    DEFAULT_THINKING_MODE,
    is_model,
    is_thinking_mode,
)
from ..events.observers import CallbackList
from ..exceptions import ResynchronizationError
from ..models import FileEntry, SlashCommand, TeamMember
from .attachments import (
    AttachmentDescriptor,
    append_dropped_paths,
    append_image_mention,
    encode_data_uri,
    extract_attachments,
    remove_attachment,
)
from .buffer import CompositionBuffer, ImeTracker, KeySignal
from .picker import CLOSED, PickerContext, PickerKind, PickerState, detect_trigger, track_query
from .resolvers import SelectionResult, resolve_command, resolve_file, resolve_mention
from .submission import SubmissionGate, SubmitOutcome, SubmitRequest

if TYPE_CHECKING:
    from ..dispatch import TeamRoster
    from ..managers.command import CommandManager
    from .files import FileIndex

LOGGER = logging.getLogger(__name__)


class KeyAction(str, Enum):
    """What the widget should do with a key after the controller saw it."""

    IGNORED = "ignored"
    HANDLED = "handled"
    NEWLINE = "newline"
    SUBMIT = "submit"


class CompositionController:
    """Own the composition buffer and the picker state machine.

    Every edit goes through :meth:`handle_edit`, which performs exactly one
    transition: open a picker for a freshly typed trigger, or re-track the
    open picker's query. Selections, attachment changes, and submits are the
    only other ways the buffer changes.
    """

    def __init__(
        self,
        context: PickerContext,
        *,
        gate: SubmissionGate | None = None,
        roster: TeamRoster | None = None,
        commands: CommandManager | None = None,
        files: FileIndex | None = None,
        thinking_mode: str = DEFAULT_THINKING_MODE,
        model_id: str = DEFAULT_MODEL,
    ) -> None:
        self.context = context
        self.gate = gate
        self.roster = roster
        self.commands = commands
        self.files = files
        self.buffer = CompositionBuffer()
        self.ime = ImeTracker()
        self.picker: PickerState = CLOSED
        self.selected_index = 0
        self.expanded = False
        self._thinking_mode = DEFAULT_THINKING_MODE
        self._model_id = DEFAULT_MODEL
        self.thinking_mode = thinking_mode
        self.model_id = model_id
        self._changes: CallbackList[CompositionController] = CallbackList(
            "composer.change"
        )

    @property
    def thinking_mode(self) -> str:
        return self._thinking_mode

    @thinking_mode.setter
    def thinking_mode(self, mode_id: str) -> None:
        if not is_thinking_mode(mode_id):
            raise ValueError(f"Unknown thinking mode {mode_id!r}.")
        self._thinking_mode = mode_id

    @property
    def model_id(self) -> str:
        return self._model_id

    @model_id.setter
    def model_id(self, model_id: str) -> None:
        if not is_model(model_id):
            raise ValueError(f"Unknown model {model_id!r}.")
        self._model_id = model_id

    @property
    def text(self) -> str:
        return self.buffer.text

    @property
    def cursor(self) -> int:
        return self.buffer.cursor

    def on_change(
        self, callback: Callable[[CompositionController], object]
    ) -> Callable[[CompositionController], object]:
        """Register a callback run after every buffer or picker change."""
        return self._changes.add(callback)

    def remove_change_listener(
        self, callback: Callable[[CompositionController], object]
    ) -> None:
        self._changes.remove(callback)

    def _notify(self) -> None:
        self._changes.emit(self)

    def _set_picker(self, state: PickerState) -> None:
        if (state.kind, state.trigger_offset) != (
            self.picker.kind,
            self.picker.trigger_offset,
        ):
            self.selected_index = 0
        self.picker = state

    def handle_edit(self, text: str, cursor: int) -> PickerState:
        """Apply one edit reported by the input widget.

        Repeating the current ``(text, cursor)`` is a no-op.
        """
        cursor = max(0, min(cursor, len(text)))
        if text == self.buffer.text and cursor == self.buffer.cursor:
            return self.picker
        previous = self.buffer.text
        self.buffer.text = text
        self.buffer.cursor = cursor
        opened = detect_trigger(previous, text, cursor, self.context)
        if opened is not None:
            self._set_picker(opened)
        elif self.picker.is_open:
            self._set_picker(track_query(self.picker, text, cursor))
        self._notify()
        return self.picker

    def _replace_text(self, text: str, cursor: int | None = None) -> None:
        self.buffer.text = text
        self.buffer.cursor = len(text) if cursor is None else cursor
        if self.picker.is_open:
            self._set_picker(track_query(self.picker, text, self.buffer.cursor))
        self._notify()

    def close_picker(self) -> bool:
        """Close the active picker; the buffer is left untouched."""
        if not self.picker.is_open:
            return False
        self._set_picker(CLOSED)
        self._notify()
        return True

    def toggle_expanded(self) -> bool:
        self.expanded = not self.expanded
        self._notify()
        return self.expanded

    # IME composition

    def composition_start(self) -> None:
        self.ime.composition_start()
        self.buffer.composing = True

    def composition_end(self) -> None:
        self.ime.composition_end()
        self.buffer.composing = False

    # Picker candidates and navigation

    def candidates(self) -> list[Any]:
        """Items offered by the open picker for its current query."""
        query = self.picker.query
        if self.picker.kind is PickerKind.MENTION and self.roster is not None:
            return list(self.roster.filter(query))
        if self.picker.kind is PickerKind.COMMAND and self.commands is not None:
            return list(self.commands.filter(query))
        if self.picker.kind is PickerKind.FILE_REF and self.files is not None:
            return list(self.files.search(query))
        return []

    def move_selection(self, step: int) -> int:
        count = len(self.candidates())
        if count == 0:
            self.selected_index = 0
        else:
            self.selected_index = (self.selected_index + step) % count
        self._notify()
        return self.selected_index

    def handle_key(self, signal: KeySignal) -> KeyAction:
        """Interpret navigation and submit keys.

        Plain character input is not handled here; it reaches the controller
        through :meth:`handle_edit`.
        """
        key = signal.key
        if key == "escape":
            if self.close_picker():
                return KeyAction.HANDLED
            if self.expanded:
                self.toggle_expanded()
                return KeyAction.HANDLED
            return KeyAction.IGNORED
        if self.picker.is_open:
            if key == "up":
                self.move_selection(-1)
                return KeyAction.HANDLED
            if key == "down":
                self.move_selection(1)
                return KeyAction.HANDLED
            if key == "tab" or (key == "enter" and not signal.shift):
                self.select_highlighted()
                return KeyAction.HANDLED
        if key == "enter":
            if signal.shift:
                return KeyAction.NEWLINE
            if self.ime.blocks_submit(signal):
                return KeyAction.HANDLED
            return KeyAction.SUBMIT
        return KeyAction.IGNORED

    # Selection

    def _apply(
        self, resolve: Callable[[], SelectionResult]
    ) -> SelectionResult | None:
        try:
            result = resolve()
        except ResynchronizationError as exc:
            LOGGER.warning(
                "composer.selection.desync",
                extra={
                    "event": "composer.selection.desync",
                    "picker": self.picker.kind.value if self.picker.kind else None,
                    "trigger_offset": self.picker.trigger_offset,
                    "cursor": self.buffer.cursor,
                    "reason": str(exc),
                },
            )
            self._set_picker(CLOSED)
            self._notify()
            return None
        self.buffer.text = result.text
        self.buffer.cursor = result.cursor
        self._set_picker(CLOSED)
        self._notify()
        return result

    def select_member(self, member: TeamMember) -> SelectionResult | None:
        return self._apply(
            lambda: resolve_mention(
                self.buffer.text, self.buffer.cursor, self.picker, member
            )
        )

    def select_file(self, entry: FileEntry) -> SelectionResult | None:
        return self._apply(
            lambda: resolve_file(
                self.buffer.text,
                self.buffer.cursor,
                self.picker,
                entry,
                self.context.base_path,
            )
        )

    def select_command(self, command: SlashCommand) -> SelectionResult | None:
        return self._apply(
            lambda: resolve_command(
                self.buffer.text, self.buffer.cursor, self.picker, command
            )
        )

    def select(self, item: Any) -> SelectionResult | None:
        if isinstance(item, TeamMember):
            return self.select_member(item)
        if isinstance(item, FileEntry):
            return self.select_file(item)
        if isinstance(item, SlashCommand):
            return self.select_command(item)
        raise TypeError(f"Cannot select {type(item).__name__}.")

    def select_highlighted(self) -> SelectionResult | None:
        items = self.candidates()
        if not items:
            self.close_picker()
            return None
        return self.select(items[min(self.selected_index, len(items) - 1)])

    # Attachments

    @property
    def attachments(self) -> list[AttachmentDescriptor]:
        return extract_attachments(self.buffer.text, self.context.base_path)

    def remove_attachment(self, descriptor: AttachmentDescriptor) -> None:
        updated = remove_attachment(self.buffer.text, descriptor, self.context.base_path)
        if updated != self.buffer.text:
            self._replace_text(updated)

    def add_image(self, path: str) -> None:
        updated = append_image_mention(self.buffer.text, path, self.context.base_path)
        if updated != self.buffer.text:
            self._replace_text(updated)

    def add_dropped_paths(self, paths: list[str]) -> None:
        updated = append_dropped_paths(self.buffer.text, paths, self.context.base_path)
        if updated != self.buffer.text:
            self._replace_text(updated)

    def paste_image(self, data: bytes, mime_type: str = "image/png") -> None:
        self.add_image(encode_data_uri(data, mime_type))

    # Submission

    def clear(self) -> None:
        self.buffer.clear()
        self._set_picker(CLOSED)
        self._notify()

    async def submit(self, signal: KeySignal | None = None) -> SubmitOutcome:
        """Run the submission gate and clear the buffer unless suppressed."""
        if self.gate is None:
            raise RuntimeError("No submission gate configured.")
        request = SubmitRequest(
            text=self.buffer.text,
            picker_open=self.picker.is_open,
            composing=self.ime.blocks_submit(signal),
            thinking_mode=self._thinking_mode,
            model_id=self._model_id,
        )
        outcome = await self.gate.submit(request)
        if outcome.clears_buffer:
            self.clear()
        return outcome
