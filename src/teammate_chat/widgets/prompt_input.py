"""Composer widget: multi-line prompt, picker menu, and attachment strip.

The widget keeps no composition state of its own. Every edit is forwarded
to a :class:`~teammate_chat.composer.CompositionController`, and every
controller change is mirrored back into the text area. Because
``handle_edit`` ignores a repeated ``(text, cursor)`` pair, the change
events caused by that mirroring need no extra guard.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar

from textual import events
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.widgets import Button, OptionList, TextArea
from textual.widgets.option_list import Option

from ..composer.attachments import AttachmentDescriptor, is_image_reference
from ..composer.buffer import KeySignal
from ..composer.controller import CompositionController, KeyAction
from ..models import FileEntry, SlashCommand, TeamMember

NAVIGATION_KEYS = frozenset({"up", "down", "tab"})
NEWLINE_KEYS = frozenset({"shift+enter", "ctrl+j", "alt+enter"})


def location_to_offset(text: str, location: tuple[int, int]) -> int:
    """Convert a ``(row, column)`` text area location to a character offset."""
    if not text:
        return 0
    lines = text.split("\n")
    row, col = location
    row = max(0, min(row, len(lines) - 1))
    col = max(0, col)
    offset = sum(len(lines[index]) + 1 for index in range(row))
    return offset + min(col, len(lines[row]))


def offset_to_location(text: str, offset: int) -> tuple[int, int]:
    """Convert a character offset to a ``(row, column)`` location."""
    remaining = max(0, min(offset, len(text)))
    lines = text.split("\n")
    for row, line in enumerate(lines):
        if remaining <= len(line):
            return row, remaining
        remaining -= len(line) + 1
    return len(lines) - 1, len(lines[-1])


def extract_image_paths(text: str) -> list[str]:
    """Existing image files in a drag-and-drop style paste, else an empty list."""
    paths: list[str] = []
    for token in text.strip().split():
        cleaned = token.strip().strip("'\"")
        if cleaned.startswith("file://"):
            cleaned = cleaned[len("file://") :]
        if not cleaned:
            continue
        expanded = Path(cleaned).expanduser()
        if not (is_image_reference(cleaned) and expanded.is_file()):
            return []
        paths.append(str(expanded))
    return paths


def candidate_label(item: Any) -> str:
    """Text shown for one picker candidate."""
    if isinstance(item, TeamMember):
        if item.agent_type:
            return f"@{item.display_name} — {item.agent_type}"
        return f"@{item.display_name}"
    if isinstance(item, FileEntry):
        suffix = "/" if item.is_directory else ""
        return f"{item.relative_path}{suffix}"
    if isinstance(item, SlashCommand):
        return f"/{item.qualified_name} — {item.description}"
    return str(item)


class PromptTextArea(TextArea):
    """TextArea subclass with chat key handling.

    Enter and escape are never handled here; they bubble to the
    :class:`Composer`, which asks the controller what they mean. The same
    goes for the navigation keys while a picker is open.
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding(
            "shift+enter,ctrl+j,alt+enter",
            "insert_newline",
            "New Line",
            show=False,
            priority=True,
        ),
    ]

    class PastedPaths(Message):
        """Posted when a paste consists only of existing image paths."""

        def __init__(self, paths: list[str]) -> None:
            self.paths = paths
            super().__init__()

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._picker_active = False

    def set_picker_active(self, *, active: bool) -> None:
        self._picker_active = active

    def action_insert_newline(self) -> None:
        self.insert("\n")

    async def _on_key(self, event: events.Key) -> None:
        if event.key in NEWLINE_KEYS:
            event.prevent_default()
            event.stop()
            self.insert("\n")
            return

        # Stop the TextArea defaults but let the key bubble to the Composer.
        if event.key in {"enter", "escape"}:
            event.prevent_default()
            return
        if self._picker_active and event.key in NAVIGATION_KEYS:
            event.prevent_default()
            return

        await super()._on_key(event)

    async def _on_paste(self, event: events.Paste) -> None:
        paths = extract_image_paths(event.text)
        if not paths:
            # TextArea._on_paste still runs after this handler and inserts the text.
            return
        event.prevent_default()
        event.stop()
        self.post_message(self.PastedPaths(paths))


class AttachmentStrip(Horizontal):
    """One button per image referenced from the composer text."""

    DEFAULT_CSS = """
    AttachmentStrip {
        height: auto;
    }
    AttachmentStrip.hidden {
        display: none;
    }
    AttachmentStrip Button {
        min-width: 8;
        margin-right: 1;
    }
    """

    class RemoveRequested(Message):
        """Posted when an attachment button is pressed."""

        def __init__(self, descriptor: AttachmentDescriptor) -> None:
            self.descriptor = descriptor
            super().__init__()

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._descriptors: list[AttachmentDescriptor] = []

    @property
    def descriptors(self) -> list[AttachmentDescriptor]:
        return list(self._descriptors)

    async def set_attachments(self, descriptors: list[AttachmentDescriptor]) -> None:
        """Rebuild the buttons when the set of attachments changed."""
        if descriptors == self._descriptors:
            return
        self._descriptors = list(descriptors)
        await self.remove_children()
        if descriptors:
            await self.mount_all(
                Button(
                    f"✕ {descriptor.display_name}",
                    id=f"attachment_{index}",
                    variant="default",
                )
                for index, descriptor in enumerate(descriptors)
            )
        self.set_class(not descriptors, "hidden")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        if not button_id.startswith("attachment_"):
            return
        event.stop()
        index = int(button_id.removeprefix("attachment_"))
        if 0 <= index < len(self._descriptors):
            self.post_message(self.RemoveRequested(self._descriptors[index]))


class Composer(Vertical):
    """Input region with the prompt, the picker menu, and attachments."""

    DEFAULT_CSS = """
    Composer {
        height: auto;
    }
    Composer #prompt_input {
        height: 3;
    }
    Composer.expanded #prompt_input {
        height: 12;
    }
    Composer #picker_menu {
        max-height: 8;
        width: 70;
    }
    Composer #picker_menu.hidden {
        display: none;
    }
    """

    class Submitted(Message):
        """Posted when the controller decides an enter press submits."""

        def __init__(self, value: str) -> None:
            self.value = value
            super().__init__()

    def __init__(self, controller: CompositionController, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.controller = controller
        self._candidates: list[Any] = []
        self._text_area: PromptTextArea | None = None
        self._menu: OptionList | None = None
        self._strip: AttachmentStrip | None = None

    def compose(self) -> ComposeResult:
        yield AttachmentStrip(id="attachment_strip", classes="hidden")
        yield PromptTextArea(id="prompt_input", soft_wrap=True)
        yield OptionList(id="picker_menu", classes="hidden")

    def on_mount(self) -> None:
        self._text_area = self.query_one("#prompt_input", PromptTextArea)
        self._menu = self.query_one("#picker_menu", OptionList)
        self._strip = self.query_one("#attachment_strip", AttachmentStrip)
        self.controller.on_change(self._on_controller_change)
        self._sync_from_controller()
        self._text_area.focus()

    def on_unmount(self) -> None:
        self.controller.remove_change_listener(self._on_controller_change)

    @property
    def text_area(self) -> PromptTextArea | None:
        return self._text_area

    @property
    def candidates(self) -> list[Any]:
        return list(self._candidates)

    def focus_input(self) -> None:
        if self._text_area is not None:
            self._text_area.focus()

    def set_disabled(self, *, disabled: bool) -> None:
        if self._text_area is not None:
            self._text_area.disabled = disabled

    def _cursor_offset(self) -> int:
        if self._text_area is None:
            return 0
        return location_to_offset(self._text_area.text, self._text_area.cursor_location)

    # Widget -> controller

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        event.stop()
        if self._text_area is None:
            return
        self.controller.handle_edit(self._text_area.text, self._cursor_offset())

    def on_text_area_selection_changed(self, event: TextArea.SelectionChanged) -> None:
        event.stop()
        if self._text_area is None or not self.controller.picker.is_open:
            return
        self.controller.handle_edit(self._text_area.text, self._cursor_offset())

    async def on_key(self, event: events.Key) -> None:
        """Translate enter, escape, and picker navigation into controller keys."""
        key = event.key
        shift = key.startswith("shift+")
        base_key = key.removeprefix("shift+")
        if base_key not in {"enter", "escape"} | NAVIGATION_KEYS:
            return
        action = self.controller.handle_key(KeySignal(key=base_key, shift=shift))
        if action is KeyAction.IGNORED:
            return
        event.prevent_default()
        event.stop()
        if action is KeyAction.NEWLINE and self._text_area is not None:
            self._text_area.insert("\n")
        elif action is KeyAction.SUBMIT:
            self.post_message(self.Submitted(self.controller.text))

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        if event.option_list.id != "picker_menu":
            return
        event.stop()
        index = event.option_index
        if 0 <= index < len(self._candidates):
            self.controller.select(self._candidates[index])
        self.focus_input()

    def on_prompt_text_area_pasted_paths(
        self, event: PromptTextArea.PastedPaths
    ) -> None:
        event.stop()
        self.controller.add_dropped_paths(event.paths)

    def on_attachment_strip_remove_requested(
        self, event: AttachmentStrip.RemoveRequested
    ) -> None:
        event.stop()
        self.controller.remove_attachment(event.descriptor)
        self.focus_input()

    # Controller -> widget

    def _on_controller_change(self, _controller: CompositionController) -> None:
        self._sync_from_controller()

    def _sync_from_controller(self) -> None:
        if self._text_area is None:
            return
        controller = self.controller
        if self._text_area.text != controller.text:
            self._text_area.text = controller.text
        location = offset_to_location(controller.text, controller.cursor)
        if self._text_area.cursor_location != location:
            self._text_area.move_cursor(location)
        self.set_class(controller.expanded, "expanded")
        self._refresh_picker_menu()
        self.call_later(self._refresh_attachments)

    def _refresh_picker_menu(self) -> None:
        if self._menu is None or self._text_area is None:
            return
        picker_open = self.controller.picker.is_open
        self._candidates = self.controller.candidates() if picker_open else []
        self._text_area.set_picker_active(active=bool(self._candidates))
        self._menu.clear_options()
        if not self._candidates:
            self._menu.add_class("hidden")
            return
        self._menu.add_options(
            Option(candidate_label(item), id=f"candidate_{index}")
            for index, item in enumerate(self._candidates)
        )
        self._menu.highlighted = min(
            self.controller.selected_index, len(self._candidates) - 1
        )
        self._menu.remove_class("hidden")

    async def _refresh_attachments(self) -> None:
        if self._strip is not None:
            await self._strip.set_attachments(self.controller.attachments)
