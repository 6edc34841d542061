"""Build command execution inside the disposable build directory."""

from __future__ import annotations

import logging as py_logging
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from batterybench.errors import ConfigurationError
from batterybench.process import SPAWN_FAILURE_RETURNCODE, PopenFactory, stream_process

logger = py_logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildResult:
    command: tuple[str, ...]
    success: bool
    returncode: int


class BuildRunner:
    def __init__(self, *, popen: PopenFactory = subprocess.Popen) -> None:
        self._popen = popen

    def run(
        self,
        command: list[str],
        *,
        cwd: str | Path,
        emit: Callable[[str], None],
    ) -> BuildResult:
        if not command or not command[0].strip():
            raise ConfigurationError("Build command is empty", hint="Pass a command with --build.")

        try:
            returncode = stream_process(list(command), emit=emit, cwd=cwd, popen=self._popen)
        except OSError as exc:
            logger.error("Failed to spawn build command=%s error=%s", command, exc)
            emit(f"Failed to start {command[0]}: {exc}")
            return BuildResult(command=tuple(command), success=False, returncode=SPAWN_FAILURE_RETURNCODE)

        success = returncode == 0
        if not success:
            logger.warning("Build failed command=%s returncode=%s", command, returncode)
        return BuildResult(command=tuple(command), success=success, returncode=returncode)
