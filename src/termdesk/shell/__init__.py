"""Simulated shell for termdesk sessions.

Holds the in-memory filesystem, the per-session state and the command
interpreter. Nothing in this package touches the real host.
"""

from termdesk.shell.filesystem import EntryKind, VirtualFilesystem, normalize_path
from termdesk.shell.interpreter import CLEAR_SENTINEL, CommandResult, Verb, interpret
from termdesk.shell.state import SessionState, ShellProfile

__all__ = [
    "CLEAR_SENTINEL",
    "CommandResult",
    "EntryKind",
    "SessionState",
    "ShellProfile",
    "Verb",
    "VirtualFilesystem",
    "interpret",
    "normalize_path",
]
