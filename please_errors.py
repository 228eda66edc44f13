"""
please_errors.py - Exception hierarchy for please.

Library code raises subclasses of PleaseError; only the CLI turns them into
messages and a non-zero exit status.
"""

from __future__ import annotations

__all__ = [
    "PleaseError",
    "InvalidInputError",
    "StateConflictError",
    "MissingResourceError",
    "ParseInconsistencyError",
    "ScriptIOError",
    "ScriptRunError",
]


class PleaseError(Exception):
    """Root exception for all please errors."""


class InvalidInputError(PleaseError):
    """Raised for an empty or malformed script name."""


class StateConflictError(PleaseError):
    """Raised when the build file's existence contradicts the requested operation."""


class MissingResourceError(PleaseError):
    """Raised when a history file or script file is not where it should be."""


class ParseInconsistencyError(PleaseError):
    """Raised when history holds an ask marker with no recorded variable left for it."""


class ScriptIOError(PleaseError):
    """Raised when reading, writing or chmod-ing a file fails."""


class ScriptRunError(PleaseError):
    """Raised when a script or an ask expression exits with a non-zero status."""
