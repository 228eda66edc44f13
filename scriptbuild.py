"""
scriptbuild.py - Build sessions and the scripts they produce.

A build session lives in `<state_dir>/build.json` between `please build <name>`
and the finalizing `please build`. Its existence is what marks a build as
active, so at most one can be in progress at a time.
"""

from __future__ import annotations

import json
import os
import subprocess
from dataclasses import asdict, dataclass, field
from pathlib import Path

from histparse import parse_history
from please_config import Config
from please_errors import (
    InvalidInputError,
    MissingResourceError,
    ScriptIOError,
    ScriptRunError,
    StateConflictError,
)

SCRIPT_EXT = ".sh"
SCRIPT_MODE = 0o755


# ============================================================================
# DATA STRUCTURES
# ============================================================================


@dataclass
class Variable:
    """A prompt recorded with `please ask`."""

    value: str  # name of the env var holding the answer
    expr: str


@dataclass
class BuildFile:
    """The persisted state of a build in progress."""

    script_name: str
    variables: list[Variable] = field(default_factory=list)

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)

    @classmethod
    def from_json(cls, text: str) -> "BuildFile":
        data = json.loads(text)
        return cls(
            script_name=data["script_name"],
            variables=[Variable(value=v["value"], expr=v["expr"]) for v in data["variables"]],
        )

    def save_as_new(self, path: Path) -> None:
        if path.exists():
            raise StateConflictError("Seems like you are already building a script")
        self.save_replace(path)

    def save_replace(self, path: Path) -> None:
        try:
            path.write_text(self.to_json(), encoding="utf-8")
        except OSError as e:
            raise ScriptIOError(f"Could not write build file {path}: {e}") from e

    @classmethod
    def current_build(cls, config: Config) -> "BuildFile":
        path = config.build_file_path
        if not path.exists():
            raise StateConflictError("No build in progress; start one with `please build <name>`")
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ScriptIOError(f"Could not read build file {path}: {e}") from e
        try:
            return cls.from_json(text)
        except (ValueError, KeyError, TypeError) as e:
            raise ScriptIOError(f"Could not parse build file {path}: {e!r}") from e


def validate_script_name(name: str) -> str:
    if not name or not name.strip():
        raise InvalidInputError("Script name cannot be empty")
    if name.endswith(SCRIPT_EXT):
        raise InvalidInputError(f"Script name cannot end with {SCRIPT_EXT}")
    if "/" in name:
        raise InvalidInputError(f"Script name cannot contain '/': {name}")
    return name


# ============================================================================
# SCRIPTS
# ============================================================================


class Script:
    """A script file in the scripts directory."""

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def parse(cls, reference: str, config: Config) -> "Script":
        """→ `foo` and `foo.sh` both resolve to <scripts_dir>/foo.sh"""
        if not reference:
            raise InvalidInputError("Script name cannot be empty")
        file_name = reference if reference.endswith(SCRIPT_EXT) else f"{reference}{SCRIPT_EXT}"
        if "/" in file_name:
            raise InvalidInputError(f"Script name cannot contain '/': {reference}")
        return cls(config.scripts_dir / file_name)

    @property
    def name(self) -> str:
        return self.path.stem

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Script({str(self.path)!r})"

    def exists(self) -> bool:
        return self.path.is_file()

    def ensure_exists(self) -> None:
        if not self.exists():
            raise MissingResourceError(f"Script `{self.name}` does not exist")

    def run(self) -> None:
        self.ensure_exists()
        try:
            result = subprocess.run(["sh", str(self.path)])
        except OSError as e:
            raise ScriptIOError(f"Could not run script `{self.name}`: {e}") from e
        if result.returncode != 0:
            raise ScriptRunError(f"Script `{self.name}` exited with status {result.returncode}")

    def read(self) -> str:
        self.ensure_exists()
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise ScriptIOError(f"Could not read script `{self.name}`: {e}") from e

    def write(self, content: str) -> None:
        try:
            self.path.write_text(content, encoding="utf-8")
            os.chmod(self.path, SCRIPT_MODE)
        except OSError as e:
            raise ScriptIOError(f"Could not write script `{self.name}`: {e}") from e

    def delete(self) -> None:
        self.ensure_exists()
        try:
            self.path.unlink()
        except OSError as e:
            raise ScriptIOError(f"Could not delete script `{self.name}`: {e}") from e


def get_scripts(config: Config) -> list[Script]:
    """→ All *.sh files in the scripts directory, sorted by name"""
    try:
        paths = [p for p in config.scripts_dir.iterdir() if p.is_file() and p.suffix == SCRIPT_EXT]
    except OSError as e:
        raise ScriptIOError(f"Could not read scripts dir {config.scripts_dir}: {e}") from e
    return [Script(p) for p in sorted(paths, key=lambda p: p.name)]


# ============================================================================
# BUILDER
# ============================================================================


class ScriptBuilder:
    """Drives a build session from start to the finished script."""

    def __init__(self, build_file: BuildFile, config: Config):
        self.build_file = build_file
        self.config = config

    @classmethod
    def build_new(cls, script_name: str, config: Config) -> "ScriptBuilder":
        validate_script_name(script_name)
        return cls(BuildFile(script_name), config)

    @classmethod
    def load_current(cls, config: Config) -> "ScriptBuilder":
        build_file = BuildFile.current_build(config)
        validate_script_name(build_file.script_name)
        return cls(build_file, config)

    @property
    def script_name(self) -> str:
        return self.build_file.script_name

    @property
    def variables(self) -> list[Variable]:
        return self.build_file.variables

    def script_path(self) -> Path:
        return self.config.scripts_dir / f"{self.script_name}{SCRIPT_EXT}"

    def start_build(self) -> None:
        """Refuses to start if the script already exists, since finalizing would overwrite it."""
        if self.script_path().exists():
            raise StateConflictError(
                f"Script `{self.script_name}` already exists. "
                f"Delete it with `please delete {self.script_name}` or pick another name"
            )
        self.build_file.save_as_new(self.config.build_file_path)

    def add_var(self, var_name: str, var_expr: str) -> None:
        self.build_file.variables.append(Variable(value=var_name, expr=var_expr))

    def save_replace(self) -> None:
        self.build_file.save_replace(self.config.build_file_path)

    def parse_lines(self) -> list[str]:
        histfile = self.config.require_histfile()
        try:
            contents = histfile.read_text(encoding="utf-8", errors="ignore")
        except FileNotFoundError as e:
            raise MissingResourceError(f"History file not found at '{histfile}'") from e
        except OSError as e:
            raise ScriptIOError(f"Could not read history file '{histfile}': {e}") from e
        return parse_history(contents, self.build_file.variables, self.config.shell)

    def render_script(self) -> str:
        """→ The script as it would be written right now, without touching any state"""
        return "\n".join(self.parse_lines())

    def build(self) -> Script:
        """Writes the script, then deletes the build file. Nothing is deleted on failure."""
        validate_script_name(self.script_name)
        content = self.render_script()
        script = Script(self.script_path())
        script.write(content + "\n")
        self.delete_build()
        return script

    def delete_build(self) -> None:
        path = self.config.build_file_path
        if not path.exists():
            raise StateConflictError("Build file does not exist")
        try:
            path.unlink()
        except OSError as e:
            raise ScriptIOError(f"Could not remove build file {path}: {e}") from e
