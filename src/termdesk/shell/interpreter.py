"""Simulated shell command interpreter.

Each recognized verb is bound to a handler ``(args, state) -> CommandResult``
that reads and mutates only the given SessionState. Nothing here performs
real I/O or spawns processes; all output is simulated.

Argument policy: the command line is split on runs of whitespace and
quoting is not supported, so ``echo a  b`` prints ``a b``.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from termdesk.shell.filesystem import (
    EntryExistsError,
    EntryKind,
    FilesystemError,
    basename,
    normalize_path,
)
from termdesk.shell.state import SessionState

logger = logging.getLogger(__name__)

CLEAR_SENTINEL = "__CLEAR__"

LS_DATE = "Oct 25 14:30"
LS_DIR_SIZE = 96
LS_FILE_SIZE = 1234

HELP_TEXT = (
    "Available commands:\n"
    "  ls [-la] [dir] - List directory contents\n"
    "  pwd            - Print working directory\n"
    "  cd <dir>       - Change directory\n"
    "  mkdir <dir>    - Create directory\n"
    "  rm [-r] <file> - Remove file or directory\n"
    "  cat <file>     - Display file contents\n"
    "  whoami         - Print current user\n"
    "  date           - Show current date and time\n"
    "  echo <text>    - Print text\n"
    "  clear          - Clear terminal\n"
    "  uname          - Show system information\n"
    "  env            - Show environment variables\n"
    "  help           - Show this help message\n"
    "\n"
    "Note: This is a simulated terminal for demonstration.\n"
)

_LONG_FLAGS = frozenset({"-l", "-la", "-al"})
_RECURSIVE_FLAGS = frozenset({"-r", "-R", "-rf", "-fr"})


class Verb(str, enum.Enum):
    """The closed set of commands the interpreter understands."""

    LS = "ls"
    PWD = "pwd"
    CD = "cd"
    MKDIR = "mkdir"
    RM = "rm"
    CAT = "cat"
    WHOAMI = "whoami"
    DATE = "date"
    UNAME = "uname"
    ENV = "env"
    ECHO = "echo"
    HELP = "help"
    CLEAR = "clear"


@dataclass(frozen=True)
class CommandResult:
    """Text produced by one command and whether it completed normally."""

    output: str
    success: bool = True

    @property
    def is_clear(self) -> bool:
        return self.output == CLEAR_SENTINEL


def _fail(message: str) -> CommandResult:
    return CommandResult(output=message, success=False)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _split_flags(args: list[str]) -> tuple[list[str], list[str]]:
    flags = [a for a in args if a.startswith("-") and len(a) > 1]
    operands = [a for a in args if a not in flags]
    return flags, operands


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _ls(args: list[str], state: SessionState) -> CommandResult:
    flags, operands = _split_flags(args)
    long_mode = any(f in _LONG_FLAGS for f in flags)
    target = operands[0] if operands else state.cwd
    path = normalize_path(target, state.cwd)

    entry = state.fs.lookup(path)
    if entry is None:
        return _fail(f"ls: cannot access '{target}': No such file or directory\n")
    if entry.is_dir:
        names = state.fs.list(path)
        parent = path.rstrip("/")
    else:
        names = [basename(path)]
        parent = path.rpartition("/")[0]
    if not names:
        return CommandResult(output="")

    if not long_mode:
        return CommandResult(output="  ".join(names) + "\n")

    lines = []
    for name in names:
        child = state.fs.lookup(f"{parent}/{name}")
        is_dir = child is not None and child.is_dir
        size = LS_DIR_SIZE if is_dir else LS_FILE_SIZE
        lines.append(
            f"{'d' if is_dir else '-'}rwxr-xr-x  1 user group  {size} {LS_DATE} {name}"
        )
    return CommandResult(output="\n".join(lines) + "\n")


def _pwd(args: list[str], state: SessionState) -> CommandResult:
    return CommandResult(output=state.cwd + "\n")


def _cd(args: list[str], state: SessionState) -> CommandResult:
    if not args:
        state.cwd = state.home
        return CommandResult(output="")
    path = normalize_path(args[0], state.cwd)
    if not state.fs.is_dir(path):
        return _fail(f"cd: {args[0]}: No such directory\n")
    state.cwd = path
    return CommandResult(output="")


def _mkdir(args: list[str], state: SessionState) -> CommandResult:
    if not args:
        return _fail("mkdir: missing operand\n")
    errors = []
    for operand in args:
        try:
            state.fs.create(normalize_path(operand, state.cwd), EntryKind.DIRECTORY)
        except EntryExistsError:
            errors.append(f"mkdir: cannot create directory '{operand}': File exists\n")
    if errors:
        return _fail("".join(errors))
    return CommandResult(output="")


def _rm(args: list[str], state: SessionState) -> CommandResult:
    flags, operands = _split_flags(args)
    if not operands:
        return _fail("rm: missing operand\n")
    recursive = any(f in _RECURSIVE_FLAGS for f in flags)
    target = operands[0]
    path = normalize_path(target, state.cwd)

    if path == "/":
        if not recursive:
            return _fail(f"rm: cannot remove '{target}': Is a directory\n")
        return _fail("rm: it is dangerous to operate recursively on '/'\n")
    entry = state.fs.lookup(path)
    if entry is None:
        return _fail(f"rm: cannot remove '{target}': No such file or directory\n")
    if entry.is_dir and not recursive:
        return _fail(f"rm: cannot remove '{target}': Is a directory\n")

    try:
        state.fs.remove(path, recursive=recursive)
    except FilesystemError as e:
        return _fail(f"rm: cannot remove '{target}': {e.reason}\n")
    state.ensure_cwd()
    return CommandResult(output="")


def _cat(args: list[str], state: SessionState) -> CommandResult:
    if not args:
        return _fail("cat: missing operand\n")
    target = args[0]
    entry = state.fs.lookup(normalize_path(target, state.cwd))
    if entry is None:
        return _fail(f"cat: {target}: No such file or directory\n")
    if entry.is_dir:
        return _fail(f"cat: {target}: Is a directory\n")
    return CommandResult(output=entry.content)


def _whoami(args: list[str], state: SessionState) -> CommandResult:
    return CommandResult(output=state.profile.user + "\n")


def _date(args: list[str], state: SessionState) -> CommandResult:
    return CommandResult(output=_now().strftime("%a %b %d %H:%M:%S UTC %Y") + "\n")


def _uname(args: list[str], state: SessionState) -> CommandResult:
    p = state.profile
    return CommandResult(output=f"Linux {p.hostname} {p.kernel} {p.machine} GNU/Linux\n")


def _env(args: list[str], state: SessionState) -> CommandResult:
    p = state.profile
    return CommandResult(
        output=(
            f"USER={p.user}\n"
            f"HOME={p.home}\n"
            f"SHELL={p.shell}\n"
            "PATH=/usr/local/bin:/usr/bin:/bin\n"
            f"PWD={state.cwd}\n"
        )
    )


def _echo(args: list[str], state: SessionState) -> CommandResult:
    return CommandResult(output=" ".join(args) + "\n")


def _help(args: list[str], state: SessionState) -> CommandResult:
    return CommandResult(output=HELP_TEXT)


def _clear(args: list[str], state: SessionState) -> CommandResult:
    return CommandResult(output=CLEAR_SENTINEL)


Handler = Callable[[list[str], SessionState], CommandResult]

HANDLERS: dict[Verb, Handler] = {
    Verb.LS: _ls,
    Verb.PWD: _pwd,
    Verb.CD: _cd,
    Verb.MKDIR: _mkdir,
    Verb.RM: _rm,
    Verb.CAT: _cat,
    Verb.WHOAMI: _whoami,
    Verb.DATE: _date,
    Verb.UNAME: _uname,
    Verb.ENV: _env,
    Verb.ECHO: _echo,
    Verb.HELP: _help,
    Verb.CLEAR: _clear,
}


def interpret(command_line: str, state: SessionState) -> CommandResult:
    """Run one command line against ``state`` and return its output.

    The first whitespace-delimited token selects the verb
    (case-insensitively); the rest are positional arguments. Callers
    must hold ``state.lock`` when state is shared between connections.
    """
    tokens = command_line.split()
    if not tokens:
        return CommandResult(output="")

    name, args = tokens[0].lower(), tokens[1:]
    try:
        verb = Verb(name)
    except ValueError:
        return _fail(f"Command not found: {name}\nType 'help' for available commands.\n")

    logger.debug("Interpreting %s with %d args", verb.value, len(args))
    return HANDLERS[verb](args, state)
