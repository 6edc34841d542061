"""Streaming subprocess execution shared by clone and build steps."""

from __future__ import annotations

import logging as py_logging
import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

logger = py_logging.getLogger(__name__)

SPAWN_FAILURE_RETURNCODE = 127


class PopenFactory(Protocol):
    def __call__(
        self,
        args: list[str],
        *,
        cwd: str | Path | None = None,
        stdout: int | None = None,
        stderr: int | None = None,
        stdin: int | None = None,
        text: bool = False,
        bufsize: int = -1,
        errors: str | None = None,
    ) -> subprocess.Popen[str]: ...


def stream_process(
    command: list[str],
    *,
    emit: Callable[[str], None],
    cwd: str | Path | None = None,
    popen: PopenFactory = subprocess.Popen,
) -> int:
    """Run ``command`` and emit each merged stdout/stderr line as it arrives.

    Returns the exit code. Raises ``OSError`` when the command cannot be spawned.
    """
    logger.debug("Spawning command=%s cwd=%s", command, cwd)
    process = popen(
        command,
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        stdin=subprocess.DEVNULL,
        text=True,
        bufsize=1,
        errors="replace",
    )
    assert process.stdout is not None
    with process.stdout:
        for line in process.stdout:
            emit(line.rstrip("\r\n"))
    returncode = process.wait()
    logger.debug("Command finished command=%s returncode=%s", command, returncode)
    return returncode
