"""
please_config.py - Where please keeps its state.

A Config is built once in main() and handed to everything that touches the
filesystem.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from histparse import Shell, resolve_histfile
from please_errors import MissingResourceError, ScriptIOError

APP_DIR_NAME = "please"
SCRIPTS_DIR_NAME = "scripts"
BUILD_FILE_NAME = "build.json"


@dataclass(frozen=True)
class Config:
    """Directories and files used by a single invocation."""

    state_dir: Path
    scripts_dir: Path
    build_file_path: Path
    histfile: Path | None = None
    shell: Shell = Shell.ZSH

    @classmethod
    def from_base_dir(
        cls, base_dir: Path | str, histfile: Path | None = None, shell: Shell = Shell.ZSH
    ) -> "Config":
        """→ Config rooted at <base_dir>/please, mostly useful for tests"""
        state_dir = Path(base_dir) / APP_DIR_NAME
        config = cls(
            state_dir=state_dir,
            scripts_dir=state_dir / SCRIPTS_DIR_NAME,
            build_file_path=state_dir / BUILD_FILE_NAME,
            histfile=histfile,
            shell=shell,
        )
        config.ensure_state()
        return config

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, home: Path | None = None) -> "Config":
        """
        State dir: $PLEASE_STATE_DIR, else $XDG_STATE_HOME/please, else ~/.local/state/please.

        The history file is resolved here too, but a missing $SHELL only becomes an
        error once something actually needs to read history.
        """
        environ = os.environ if environ is None else environ
        home = Path.home() if home is None else home

        if explicit := environ.get("PLEASE_STATE_DIR"):
            state_dir = Path(explicit).expanduser()
        else:
            base = Path(environ.get("XDG_STATE_HOME") or home / ".local" / "state")
            state_dir = base / APP_DIR_NAME

        try:
            histfile = resolve_histfile(environ, home)
        except MissingResourceError:
            histfile = None

        shell_name = Path(environ.get("SHELL", "")).name
        shell = next((s for s in Shell if s.value == shell_name), Shell.ZSH)

        config = cls(
            state_dir=state_dir,
            scripts_dir=state_dir / SCRIPTS_DIR_NAME,
            build_file_path=state_dir / BUILD_FILE_NAME,
            histfile=histfile,
            shell=shell,
        )
        config.ensure_state()
        return config

    def ensure_state(self) -> None:
        try:
            self.scripts_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ScriptIOError(f"Could not create state directory {self.scripts_dir}: {e}") from e

    def require_histfile(self) -> Path:
        if self.histfile is None:
            raise MissingResourceError(
                "Cannot determine history file; set HISTFILE or SHELL"
            )
        return self.histfile
