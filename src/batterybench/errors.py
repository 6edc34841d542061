"""Deterministic error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    FAILURE = 1
    INVALID_ARGS = 2
    INTERRUPTED = 130


@dataclass
class BatteryBenchError(Exception):
    message: str
    code: ExitCode = ExitCode.FAILURE
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


class ConfigurationError(BatteryBenchError):
    """Invalid run configuration, e.g. a repository that is not a git remote."""


class WorkspaceIOError(BatteryBenchError):
    """Directory create/remove/copy failure inside the benchmark root."""


class ScoreLedgerError(BatteryBenchError):
    """Score record could not be read or written."""


class ExternalProcessError(BatteryBenchError):
    """Clone or build tool failed to spawn or exited non-zero."""


class UserDeclined(BatteryBenchError):
    """Operator answered no to a required continuation prompt."""


def user_facing_error(message: str, *, hint: str = "", level: str = "ERROR") -> str:
    if hint:
        return f"[{level}] {message}. Next step: {hint}"
    return f"[{level}] {message}."
