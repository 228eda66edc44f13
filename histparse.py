"""
histparse.py - Compiles the tail of a shell history log into a script.

How it works
------------
History is walked newest-to-oldest, from the finalizing `please build` back to
the `please build <name>` that opened the session. Along the way every command
is classified:

1. Administrative `please` invocations (list, current, bare build, help
   variants) are dropped.
2. `please ask <prompt>` lines become `read -p "<prompt> " VAR` followed by the
   expression recorded for VAR. Variables are consumed newest-first, since the
   scan itself runs newest-first.
3. Anything else is copied verbatim.

The collected lines are then capped with `set -e` and a shebang and reversed,
which puts everything back in chronological order.

Format
------
zsh: EXTENDED_HISTORY, ": <epoch>:<duration>;command"
bash: one command per line, optionally preceded by "#<epoch>" lines
"""

from __future__ import annotations

import os
import re
from enum import Enum
from pathlib import Path
from typing import Iterator, Mapping, Sequence

from please_errors import MissingResourceError, ParseInconsistencyError

# ============================================================================
# CONSTANTS & PATTERNS
# ============================================================================

SHEBANG = "#!/bin/sh\n"
SET_E = "set -e\n"

# Ways the tool gets invoked from a shell; the second is the development launcher.
LAUNCHERS: tuple[str, ...] = ("please", "python -m please")

BUILD_CMD = "build"
ASK_CMD = "ask"
HELP_FLAGS = ("--help", "-h")

BASH_TIMESTAMP_RE = re.compile(r"^#\d+$")


def _ignored_commands() -> frozenset[str]:
    phrases: set[str] = set()
    for launcher in LAUNCHERS:
        phrases.update(f"{launcher} {flag}" for flag in HELP_FLAGS)
        for sub in ("list", "current", BUILD_CMD):
            phrases.add(f"{launcher} {sub}")
            phrases.update(f"{launcher} {sub} {flag}" for flag in HELP_FLAGS)
        phrases.update(f"{launcher} {ASK_CMD} {flag}" for flag in HELP_FLAGS)
    return frozenset(phrases)


IGNORED_COMMANDS = _ignored_commands()


# ============================================================================
# SHELL DIALECTS
# ============================================================================


class Shell(Enum):
    """Supported history dialects."""

    ZSH = "zsh"
    BASH = "bash"

    @classmethod
    def from_path(cls, shell_path: str) -> "Shell":
        """→ Maps a $SHELL value such as /bin/zsh or /usr/local/bin/bash to a dialect"""
        name = Path(shell_path).name
        for shell in cls:
            if shell.value == name:
                return shell
        raise MissingResourceError(f"Cannot get histfile for this shell: {shell_path}")

    def default_histfile(self, home: Path) -> Path:
        return home / f".{self.value}_history"

    def iter_commands(self, history: str) -> Iterator[str]:
        """→ Yields the command payload of each history line, newest first"""
        for line in reversed(history.splitlines()):
            if self is Shell.ZSH:
                _, sep, payload = line.strip().partition(";")
                yield payload.strip() if sep else ""
            else:
                line = line.strip()
                if BASH_TIMESTAMP_RE.match(line):
                    continue
                yield line


def resolve_histfile(environ: Mapping[str, str] | None = None, home: Path | None = None) -> Path:
    """→ $HISTFILE if set, else the default history file of the shell in $SHELL"""
    environ = os.environ if environ is None else environ
    if histfile := environ.get("HISTFILE"):
        return Path(histfile).expanduser()

    shell_path = environ.get("SHELL")
    if not shell_path:
        raise MissingResourceError("Shell variable not set, cannot determine histfile")

    home = Path.home() if home is None else home
    return Shell.from_path(shell_path).default_histfile(home)


# ============================================================================
# COMMAND CLASSIFICATION
# ============================================================================


def _launcher_args(command: str) -> list[str] | None:
    """Returns the arguments after the launcher, or None if please was not invoked."""
    tokens = command.split()
    for launcher in LAUNCHERS:
        prefix = launcher.split()
        if tokens[: len(prefix)] == prefix:
            return tokens[len(prefix) :]
    return None


def _subcommand_args(command: str, subcommand: str) -> list[str] | None:
    """Returns the arguments after `<launcher> <subcommand>`, or None if it is not one."""
    args = _launcher_args(command)
    if args is None or args[:1] != [subcommand]:
        return None
    return args[1:]


def _is_help(args: list[str]) -> bool:
    # argparse prints help and exits wherever the flag appears
    return any(arg in HELP_FLAGS for arg in args)


def is_start_of_build(command: str) -> bool:
    """
    Checks if the command is the one that started the build.

    please build "script-name"    -> True
    please build                  -> False (finalize)
    please build --help           -> False
    please build -h "script-name" -> False
    """
    args = _subcommand_args(command, BUILD_CMD)
    if args is None:
        return False
    return bool(args) and not _is_help(args)


def is_ignored(command: str) -> bool:
    """Exact admin commands, plus any please invocation that only printed help."""
    if " ".join(command.split()) in IGNORED_COMMANDS:
        return True
    args = _launcher_args(command)
    return args is not None and _is_help(args)


def is_ask(command: str) -> bool:
    args = _subcommand_args(command, ASK_CMD)
    return args is not None and not _is_help(args)


def extract_prompt(command: str) -> str:
    """→ please ask "How are you doing?" -> How are you doing?"""
    args = _subcommand_args(command, ASK_CMD) or []
    return " ".join(args).strip("\"'")


# ============================================================================
# PARSING
# ============================================================================


def parse_history(history: str, variables: Sequence, shell: Shell = Shell.ZSH) -> list[str]:
    """
    Turns history text into script lines.

    `variables` are the build's recorded variables (anything with `.value` and
    `.expr`) in recording order. Raises ParseInconsistencyError if there are
    more ask markers than variables.
    """
    res: list[str] = []
    remaining = reversed(variables)

    for command in shell.iter_commands(history):
        if is_start_of_build(command):
            break

        if is_ignored(command):
            continue

        if is_ask(command):
            var = next(remaining, None)
            if var is None:
                raise ParseInconsistencyError(
                    f"Found `{command}` in history but no recorded variable is left for it"
                )
            read_cmd = f'read -p "{extract_prompt(command)} " {var.value}'
            # Reversed below, so the read ends up before the expression
            res.append(var.expr)
            res.append(read_cmd)
            continue

        res.append(command)

    res.append(SET_E)
    res.append(SHEBANG)

    return list(reversed(res))
