"""In-memory simulated filesystem scoped to one terminal session.

Entries live in a flat, insertion-ordered mapping keyed by normalized
absolute path. A path's parent is not required to exist as an entry;
only recursive removal treats the mapping as a tree.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterator

logger = logging.getLogger(__name__)

ROOT = "/"


class EntryKind(str, enum.Enum):
    """Kind of a filesystem entry."""

    DIRECTORY = "dir"
    FILE = "file"


@dataclass(frozen=True)
class Entry:
    """A single directory or file. ``content`` is only meaningful for files."""

    kind: EntryKind
    content: str = ""

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


ROOT_ENTRY = Entry(kind=EntryKind.DIRECTORY)


def normalize_path(path: str, cwd: str = ROOT) -> str:
    """Turn ``path`` into a normalized absolute path.

    Relative paths are resolved against ``cwd``. Repeated slashes are
    collapsed, ``.`` segments dropped and ``..`` segments pop one level
    (never above the root). The result has no trailing slash unless it
    is the root itself.
    """
    if not path.startswith("/"):
        path = f"{cwd}/{path}"
    parts: list[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts:
                parts.pop()
            continue
        parts.append(segment)
    return "/" + "/".join(parts)


def parent_of(path: str) -> str:
    """Parent of a normalized path (the root is its own parent)."""
    if path == ROOT:
        return ROOT
    head, _, _ = path.rpartition("/")
    return head or ROOT


def basename(path: str) -> str:
    return path.rpartition("/")[2]


class VirtualFilesystem:
    """Path-keyed map of directories and files.

    Paths given to the public methods must already be normalized (see
    :func:`normalize_path`); the root always exists as a directory and
    cannot be created or removed.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Entry] = {}

    def __contains__(self, path: object) -> bool:
        return path == ROOT or path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def lookup(self, path: str) -> Entry | None:
        """Return the entry at ``path`` or None if nothing is there."""
        if path == ROOT:
            return ROOT_ENTRY
        return self._entries.get(path)

    def is_dir(self, path: str) -> bool:
        entry = self.lookup(path)
        return entry is not None and entry.is_dir

    def create(self, path: str, kind: EntryKind, content: str = "") -> Entry:
        """Create a new entry.

        Raises:
            EntryExistsError: If an entry already occupies ``path``.
        """
        if path in self:
            raise EntryExistsError(path)
        entry = Entry(kind=kind, content=content if kind is EntryKind.FILE else "")
        self._entries[path] = entry
        logger.debug("Created %s %s", kind.value, path)
        return entry

    def remove(self, path: str, recursive: bool = False) -> list[str]:
        """Remove ``path`` (and, when ``recursive``, all of its descendants).

        Returns the removed paths in map order.

        Raises:
            EntryNotFoundError: If nothing exists at ``path``.
            DirectoryNotEmptyError: If ``path`` is a directory with
                descendants and ``recursive`` is false.
        """
        if path == ROOT or path not in self._entries:
            raise EntryNotFoundError(path)
        if recursive:
            descendants = self.descendants(path)
        elif self._entries[path].is_dir and self.descendants(path):
            raise DirectoryNotEmptyError(path)
        else:
            # A file keeps any paths nested under it.
            descendants = set()
        removed = [p for p in self._entries if p == path or p in descendants]
        for p in removed:
            del self._entries[p]
        logger.debug("Removed %d entries under %s", len(removed), path)
        return removed

    def descendants(self, path: str) -> set[str]:
        """All paths having ``path`` as a proper prefix segment."""
        prefix = path.rstrip("/") + "/"
        return {p for p in self._entries if p.startswith(prefix)}

    def list(self, path: str) -> list[str]:
        """Names of the immediate children of ``path`` in insertion order."""
        prefix = path.rstrip("/") + "/"
        return [
            p[len(prefix):]
            for p in self._entries
            if p.startswith(prefix) and "/" not in p[len(prefix):]
        ]


class FilesystemError(Exception):
    """Base class for virtual filesystem failures."""

    reason = "Operation failed"

    def __init__(self, path: str) -> None:
        super().__init__(path)
        self.path = path


class EntryExistsError(FilesystemError):
    """An entry already exists at the requested path."""

    reason = "File exists"


class EntryNotFoundError(FilesystemError):
    """No entry exists at the requested path."""

    reason = "No such file or directory"


class DirectoryNotEmptyError(FilesystemError):
    """A directory with descendants was removed without ``recursive``."""

    reason = "Directory not empty"
