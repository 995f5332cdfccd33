"""Per-session interpreter state.

A SessionState bundles one VirtualFilesystem with the current-directory
cursor and the lock that serializes command execution for the session.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from termdesk.shell.filesystem import (
    ROOT,
    EntryKind,
    VirtualFilesystem,
    parent_of,
)

README = (
    "# TermDesk\n"
    "\n"
    "Collaborative terminal sharing application.\n"
    "\n"
    "Features:\n"
    "- Real-time terminal sharing\n"
    "- Multi-user sessions\n"
    "- WebSocket communication\n"
    "\n"
)

CONFIG_JSON = (
    "{\n"
    '  "name": "termdesk",\n'
    '  "version": "1.0.0",\n'
    '  "port": 8080\n'
    "}\n"
)

START_SH = '#!/bin/bash\necho "Starting TermDesk..."\n'

# Relative to the home directory, in listing order.
DEFAULT_TREE: tuple[tuple[str, EntryKind, str], ...] = (
    ("README.md", EntryKind.FILE, README),
    ("config.json", EntryKind.FILE, CONFIG_JSON),
    ("src", EntryKind.DIRECTORY, ""),
    ("docs", EntryKind.DIRECTORY, ""),
    ("start.sh", EntryKind.FILE, START_SH),
)


@dataclass(frozen=True)
class ShellProfile:
    """Simulated identity reported by whoami, uname and env."""

    user: str = "termdesk-user"
    hostname: str = "termdesk-server"
    home: str = "/home/termdesk"
    shell: str = "/bin/bash"
    kernel: str = "5.15.0"
    machine: str = "x86_64"


def seed_filesystem(home: str) -> VirtualFilesystem:
    """Build the fixed starter tree rooted at ``home``."""
    fs = VirtualFilesystem()
    ancestors: list[str] = []
    path = parent_of(home)
    while path != ROOT:
        ancestors.append(path)
        path = parent_of(path)
    for ancestor in reversed(ancestors):
        fs.create(ancestor, EntryKind.DIRECTORY)
    fs.create(home, EntryKind.DIRECTORY)
    for name, kind, content in DEFAULT_TREE:
        fs.create(f"{home}/{name}", kind, content)
    return fs


@dataclass
class SessionState:
    """Filesystem, working directory and command lock for one session."""

    fs: VirtualFilesystem
    cwd: str
    profile: ShellProfile = field(default_factory=ShellProfile)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @classmethod
    def fresh(cls, profile: ShellProfile | None = None) -> SessionState:
        """A newly seeded state with the cursor at the profile's home."""
        profile = profile or ShellProfile()
        return cls(fs=seed_filesystem(profile.home), cwd=profile.home, profile=profile)

    @property
    def home(self) -> str:
        return self.profile.home

    def ensure_cwd(self) -> None:
        """Move the cursor up until it references an existing directory."""
        while not self.fs.is_dir(self.cwd):
            self.cwd = parent_of(self.cwd)
