"""File candidates for the ``@`` file-reference picker."""

from __future__ import annotations

import os
from pathlib import Path

from ..models import FileEntry

IGNORED_DIRECTORIES = frozenset(
    {
        "node_modules",
        "__pycache__",
        "dist",
        "build",
        "target",
        "vendor",
        "venv",
        "coverage",
    }
)
DEFAULT_SCAN_LIMIT = 5000
DEFAULT_RESULT_LIMIT = 50


class FileIndex:
    """Walk a base directory lazily and search it by substring.

    The walk happens on the first search and is capped at ``scan_limit``
    files. Hidden directories and common build/dependency folders are
    skipped. Call :meth:`refresh` to rescan.
    """

    def __init__(
        self,
        base_path: str,
        *,
        scan_limit: int = DEFAULT_SCAN_LIMIT,
        result_limit: int = DEFAULT_RESULT_LIMIT,
    ) -> None:
        self.base_path = base_path
        self.scan_limit = scan_limit
        self.result_limit = result_limit
        self._entries: list[FileEntry] | None = None

    def refresh(self) -> None:
        self._entries = None

    def _scan(self) -> list[FileEntry]:
        root = Path(self.base_path).expanduser()
        entries: list[FileEntry] = []
        if not root.is_dir():
            return entries
        for directory, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(
                name
                for name in dirnames
                if not name.startswith(".") and name not in IGNORED_DIRECTORIES
            )
            for name in sorted(filenames):
                absolute = Path(directory) / name
                entries.append(
                    FileEntry(
                        path=absolute.as_posix(),
                        relative_path=absolute.relative_to(root).as_posix(),
                    )
                )
                if len(entries) >= self.scan_limit:
                    return entries
        return entries

    @property
    def entries(self) -> list[FileEntry]:
        if self._entries is None:
            self._entries = self._scan()
        return self._entries

    def search(self, query: str, limit: int | None = None) -> list[FileEntry]:
        """Return entries whose relative path contains ``query``.

        Matches on the file name sort ahead of matches elsewhere in the path.
        """
        limit = self.result_limit if limit is None else limit
        needle = query.lower()
        if not needle:
            return self.entries[:limit]
        name_hits: list[FileEntry] = []
        path_hits: list[FileEntry] = []
        for entry in self.entries:
            relative = entry.relative_path.lower()
            if needle not in relative:
                continue
            if needle in relative.rsplit("/", 1)[-1]:
                name_hits.append(entry)
            else:
                path_hits.append(entry)
        return (name_hits + path_hits)[:limit]
