"""Benchmark run loop: gate on power, then copy, build, score and clean forever."""

from __future__ import annotations

import enum
import logging as py_logging
import time
from collections.abc import Callable
from datetime import datetime

from batterybench.build.runner import BuildRunner
from batterybench.channel import EventChannel, run_producer
from batterybench.config import RunConfiguration
from batterybench.errors import ExternalProcessError, WorkspaceIOError
from batterybench.git.source import SourceProvider
from batterybench.power import PowerMonitor, wait_until_unplugged
from batterybench.score.ledger import ScoreLedger
from batterybench.workspace.manager import WorkspaceLayout, WorkspaceManager

logger = py_logging.getLogger(__name__)


class LoopState(enum.Enum):
    IDLE = "idle"
    GATING = "gating"
    PREPARING = "preparing"
    COPYING = "copying"
    BUILDING = "building"
    SCORING = "scoring"
    CLEANING = "cleaning"


class BenchmarkLoop:
    def __init__(
        self,
        config: RunConfiguration,
        *,
        monitor: PowerMonitor,
        source_present: bool,
        emit: Callable[[str], None],
        workspace: WorkspaceManager | None = None,
        source: SourceProvider | None = None,
        builder: BuildRunner | None = None,
        ledger: ScoreLedger | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config
        self.monitor = monitor
        self.source_present = source_present
        self.emit = emit
        self.workspace = workspace or WorkspaceManager(WorkspaceLayout.from_config(config))
        self.source = source or SourceProvider()
        self.builder = builder or BuildRunner()
        self.ledger = ledger or ScoreLedger(config.root_dir)
        self.sleep = sleep
        self.clock = clock
        self.state = LoopState.IDLE
        self.run_id = ""
        self.score = 0

    def _enter(self, state: LoopState) -> None:
        logger.debug("Loop state %s -> %s", self.state.value, state.value)
        self.state = state

    def _gate(self) -> None:
        self._enter(LoopState.GATING)
        wait_until_unplugged(
            self.monitor,
            self.emit,
            interval=self.config.poll_interval_seconds,
            sleep=self.sleep,
        )

    def _prepare(self) -> None:
        self._enter(LoopState.PREPARING)
        self.workspace.prepare()
        self.source.materialize(self.config, self.source_present, self.emit)
        self.source_present = True
        if self.workspace.remove_build():
            logger.info("Removed stale build directory path=%s", self.config.build_dir)
        self.run_id = self.ledger.start_run(self.clock())
        self.score = 0
        logger.info(
            "Benchmark started run_id=%s repository=%s command=%s",
            self.run_id,
            self.config.repository,
            self.config.build_command,
        )

    def _iteration(self) -> int:
        self._enter(LoopState.COPYING)
        self.emit("Copying repo")
        self.workspace.copy_source_to_build()

        self._enter(LoopState.BUILDING)
        self.emit("Building")
        result = self.builder.run(self.config.build_command, cwd=self.config.build_dir, emit=self.emit)
        if not result.success:
            logger.error("Build failed run_id=%s score=%s returncode=%s", self.run_id, self.score, result.returncode)
            error = ExternalProcessError(
                f"Build failed with exit code {result.returncode}; final score {self.score}",
                hint="Fix the build command or repository so that it builds cleanly.",
            )
            self._enter(LoopState.CLEANING)
            try:
                self.workspace.remove_build()
            except WorkspaceIOError as cleanup_error:
                raise error from cleanup_error
            raise error

        self._enter(LoopState.SCORING)
        self.emit("Build successful!")
        self.score = self.ledger.increment(self.run_id)
        self.emit(f"Current Score: {self.score}")

        self._enter(LoopState.CLEANING)
        self.workspace.remove_build()
        return self.score

    def run(self, max_iterations: int | None = None) -> int:
        """Run until a fatal error, or for ``max_iterations`` iterations when given."""
        self._gate()
        self._prepare()

        completed = 0
        while max_iterations is None or completed < max_iterations:
            if completed and self.config.gate_policy == "every-iteration":
                self._gate()
            self._iteration()
            completed += 1
            if self.config.iteration_pause_seconds:
                self.sleep(self.config.iteration_pause_seconds)
        logger.info("Benchmark stopped run_id=%s iterations=%s score=%s", self.run_id, completed, self.score)
        return self.score


def bench(
    config: RunConfiguration,
    *,
    monitor: PowerMonitor,
    source_present: bool,
    max_iterations: int | None = None,
    **collaborators: object,
) -> EventChannel:
    """Start the benchmark on a worker thread and return its ordered event stream."""

    def _work(channel: EventChannel) -> None:
        loop = BenchmarkLoop(
            config,
            monitor=monitor,
            source_present=source_present,
            emit=channel.send,
            **collaborators,  # type: ignore[arg-type]
        )
        loop.run(max_iterations=max_iterations)

    return run_producer(_work)
