"""Console reporting for the command line: errors, warnings, hints and exits."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from typing import NoReturn, Union


class ExitReason(Enum):
    """Why the program stopped; the exit status is the code of the character."""

    ASSERTION_FAILED = "!"
    INVALID_ARGS = "-"
    INVALID_INPUT_FILE = ">"
    TODO = ":"

    @property
    def code(self) -> int:
        return ord(self.value)


@dataclass
class _Settings:
    verbose: bool = False


_settings = _Settings()


class Hinter:
    """Prints follow-up hints beneath a message, unless suppressed."""

    def __init__(self, suppress: bool = False) -> None:
        self.suppress = suppress

    def hint(self, *args: str) -> Hinter:
        if not self.suppress:
            for hint in args:
                sys.stderr.write(f"  - {hint}\n")
        return self


def _terminated(message: object) -> str:
    text = str(message)
    if text.find("\n") <= 0:
        text += "\n"
    return text


def set_verbose(flag: bool) -> None:
    """Turn verbose output on or off."""
    _settings.verbose = bool(flag)


def is_verbose() -> bool:
    return _settings.verbose


def fatal(message: object) -> Hinter:
    """Print an error message to standard error."""
    sys.stderr.write(_terminated(message))
    return Hinter()


def warn(message: object) -> Hinter:
    """Print a warning message to standard error."""
    sys.stderr.write(_terminated(message))
    return Hinter()


def verbose(message: object) -> Hinter:
    """Print a debug message to standard error when verbose output is on."""
    if _settings.verbose:
        sys.stderr.write(_terminated(message))
    return Hinter(suppress=not _settings.verbose)


def exit_with(reason: Union[ExitReason, str]) -> NoReturn:
    """Stop the program with the exit status belonging to reason."""
    raise SystemExit(ExitReason(reason).code)


def exit_bug(issue: str) -> NoReturn:
    """Report an internal inconsistency and stop."""
    fatal(issue)
    exit_with(ExitReason.ASSERTION_FAILED)


def exit_not_implemented(feature: str) -> NoReturn:
    """Report a missing feature and stop."""
    fatal(f"Not yet implemented: {feature}")
    exit_with(ExitReason.TODO)