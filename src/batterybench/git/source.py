"""Source checkout materialization (clone once, reuse afterwards)."""

from __future__ import annotations

import logging as py_logging
import subprocess
from collections.abc import Callable

from batterybench.config import RunConfiguration
from batterybench.errors import ExternalProcessError
from batterybench.process import PopenFactory, stream_process

logger = py_logging.getLogger(__name__)


def clone_command(repository: str, destination: str) -> list[str]:
    return ["git", "clone", "--progress", repository, "--recursive", destination]


class SourceProvider:
    def __init__(self, *, popen: PopenFactory = subprocess.Popen) -> None:
        self._popen = popen

    def materialize(
        self,
        config: RunConfiguration,
        already_present: bool,
        emit: Callable[[str], None],
    ) -> None:
        if already_present:
            logger.debug("Reusing source checkout path=%s", config.source_dir)
            emit(f"Using existing source checkout at {config.source_dir}")
            return

        command = clone_command(config.repository, str(config.source_dir))
        logger.debug("Cloning repository=%s destination=%s", config.repository, config.source_dir)
        emit(f"Cloning {config.repository}")
        try:
            returncode = stream_process(command, emit=emit, popen=self._popen)
        except OSError as exc:
            logger.error("Failed to spawn git clone error=%s", exc)
            raise ExternalProcessError(
                "Failed to start git clone",
                hint="Install git and make sure it is available in PATH.",
            ) from exc
        if returncode != 0:
            logger.error("git clone failed repository=%s returncode=%s", config.repository, returncode)
            raise ExternalProcessError(
                f"Failed to clone {config.repository} (exit code {returncode})",
                hint="Check the repository URL, network access and git credentials.",
            )
        logger.debug("Clone finished destination=%s", config.source_dir)
