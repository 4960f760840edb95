"""Tests for picker selection resolvers."""

from __future__ import annotations

import unittest

from teammate_chat.composer.picker import PickerKind, PickerState
from teammate_chat.composer.resolvers import (
    file_reference_text,
    mention_text,
    resolve_command,
    resolve_file,
    resolve_mention,
)
from teammate_chat.exceptions import ResynchronizationError
from teammate_chat.models import FileEntry, SlashCommand, TeamMember

JAMES = TeamMember(id="m1", name="James")


class MentionResolverTests(unittest.TestCase):
    """Validate mention replacement."""

    def test_replaces_partial_query_with_canonical_name(self) -> None:
        picker = PickerState(PickerKind.MENTION, 6, "J")
        result = resolve_mention("hello @J", 8, picker, JAMES)
        self.assertEqual(result.text, "hello @James ")
        self.assertEqual(result.cursor, 13)

    def test_text_after_cursor_is_kept(self) -> None:
        picker = PickerState(PickerKind.MENTION, 0, "J")
        result = resolve_mention("@J please", 2, picker, JAMES)
        self.assertEqual(result.text, "@James  please")
        self.assertEqual(result.cursor, 7)

    def test_nickname_with_spaces_is_quoted(self) -> None:
        member = TeamMember(id="m2", name="Robert", nickname="Big Bob")
        self.assertEqual(mention_text(member), '"Big Bob"')
        picker = PickerState(PickerKind.MENTION, 0, "")
        result = resolve_mention("@", 1, picker, member)
        self.assertEqual(result.text, '@"Big Bob" ')
        self.assertEqual(result.cursor, len('@"Big Bob" '))

    def test_moved_trigger_raises_resynchronization_error(self) -> None:
        picker = PickerState(PickerKind.MENTION, 3, "J")
        with self.assertRaises(ResynchronizationError):
            resolve_mention("hello @J", 8, picker, JAMES)

    def test_wrong_picker_kind_raises(self) -> None:
        picker = PickerState(PickerKind.COMMAND, 0, "")
        with self.assertRaises(ResynchronizationError):
            resolve_mention("/", 1, picker, JAMES)


class FileResolverTests(unittest.TestCase):
    """Validate file reference replacement."""

    def test_path_is_made_relative_to_base(self) -> None:
        self.assertEqual(file_reference_text("/work/src/a.py", "/work/"), "src/a.py")
        self.assertEqual(file_reference_text("/other/a.py", "/work"), "/other/a.py")
        self.assertEqual(file_reference_text("/workshop/a.py", "/work"), "/workshop/a.py")

    def test_resolve_file_inserts_relative_path(self) -> None:
        picker = PickerState(PickerKind.FILE_REF, 4, "ma")
        entry = FileEntry(path="/work/src/main.py", relative_path="src/main.py")
        result = resolve_file("see @ma", 7, picker, entry, "/work")
        self.assertEqual(result.text, "see @src/main.py ")
        self.assertEqual(result.cursor, len(result.text))

    def test_paths_with_spaces_are_quoted(self) -> None:
        picker = PickerState(PickerKind.FILE_REF, 0, "")
        entry = FileEntry(path="/work/my notes.md", relative_path="my notes.md")
        result = resolve_file("@", 1, picker, entry, "/work")
        self.assertEqual(result.text, '@"my notes.md" ')


class CommandResolverTests(unittest.TestCase):
    """Validate command replacement."""

    def test_command_selection(self) -> None:
        picker = PickerState(PickerKind.COMMAND, 0, "rev")
        command = SlashCommand(name="review", description="Review code")
        result = resolve_command("/rev", 4, picker, command)
        self.assertEqual(result.text, "/review ")
        self.assertEqual(result.cursor, 8)
        self.assertFalse(result.awaiting_arguments)

    def test_namespaced_command_awaiting_arguments(self) -> None:
        picker = PickerState(PickerKind.COMMAND, 0, "")
        command = SlashCommand(name="deploy", namespace="ops", accepts_arguments=True)
        result = resolve_command("/", 1, picker, command)
        self.assertEqual(result.text, "/ops:deploy ")
        self.assertTrue(result.awaiting_arguments)


if __name__ == "__main__":
    unittest.main()
