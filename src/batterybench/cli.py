"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import sys
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TextIO

from .config import build_run_configuration, is_valid_repository, load_settings, split_build_command
from .confirm import AssumeYesConfirmer, ConsoleConfirmer, Confirmer
from .errors import BatteryBenchError, ConfigurationError, ExitCode, UserDeclined, user_facing_error
from .logging import configure_logging, default_log_path
from .orchestrator import bench
from .power import PowerMonitor, check_charge
from .presets import DEFAULT_PRESET, preset_choices
from .score.ledger import ScoreLedger
from .workspace.manager import WorkspaceLayout, WorkspaceManager

_log = py_logging.getLogger(__name__)

_VALID_GATE_POLICIES = ("once", "every-iteration")
_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")

_DESCRIPTION = (
    "Laptop battery benchmark. Clones a repository once, then builds a fresh copy of it "
    "over and over until the battery runs out. The score is the number of successful builds."
)
DELETE_SOURCE_QUESTION = "Repo directory already exists, would you like to delete it?"


def _log_level_type(value: str) -> str:
    normalized = value.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def _max_iterations_type(value: str) -> int:
    try:
        count = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--max-iterations must be an integer") from exc
    if count < 1:
        raise argparse.ArgumentTypeError("--max-iterations must be at least 1")
    return count


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="batterybench", description=_DESCRIPTION)
    parser.add_argument("-r", "--repo", default=None, help="Repository URL to clone (http://, https:// or git@)")
    parser.add_argument(
        "-b",
        "--build",
        nargs="+",
        default=None,
        metavar="TOKEN",
        help="Build command; tokens are collected until the next option",
    )
    parser.add_argument("--preset", choices=preset_choices(), default=DEFAULT_PRESET)
    parser.add_argument("--root", type=Path, default=None, help="Benchmark data directory")
    parser.add_argument("--gate", choices=_VALID_GATE_POLICIES, default=None)
    parser.add_argument("--max-iterations", type=_max_iterations_type, default=None)
    parser.add_argument("-y", "--yes", action="store_true", help="Answer yes to every prompt")
    parser.add_argument("--scores", action="store_true", help="Print highest and latest scores and exit")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--log-level", type=_log_level_type, default="WARN")
    parser.add_argument("--log-file", type=Path, default=None)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    return parser.parse_args(argv)


def validate_namespace(namespace: argparse.Namespace) -> None:
    if namespace.repo is not None and not is_valid_repository(namespace.repo):
        raise ConfigurationError(
            f"Invalid repository URL: {namespace.repo}",
            hint="Use an http://, https:// or git@ remote.",
        )


def print_scores(root: Path, out: TextIO) -> int:
    ledger = ScoreLedger(root)
    print(f"Highest score: {ledger.highest_across_all_runs()}", file=out)
    print(f"Latest score: {ledger.latest_run()}", file=out)
    return int(ExitCode.SUCCESS)


def run_cli_flow(
    namespace: argparse.Namespace,
    *,
    confirmer: Confirmer,
    monitor_factory: Callable[[Confirmer], PowerMonitor] = PowerMonitor,
    out: TextIO | None = None,
    **collaborators: object,
) -> int:
    stream = out or sys.stdout
    validate_namespace(namespace)
    config = build_run_configuration(
        preset=namespace.preset,
        settings=load_settings(namespace.config),
        repository=namespace.repo,
        build_command=split_build_command(namespace.build) if namespace.build else None,
        root_dir=namespace.root,
        gate_policy=namespace.gate,
    )

    if namespace.scores:
        return print_scores(config.root_dir, stream)

    def emit(line: str) -> None:
        print(line, file=stream, flush=True)

    if namespace.repo is not None:
        emit(f"Using repository: {config.repository}")
    if namespace.build:
        emit(f"Using build command: {' '.join(config.build_command)}")

    monitor = monitor_factory(confirmer)
    sleep = collaborators.get("sleep", time.sleep)
    check_charge(monitor, confirmer, emit, interval=config.poll_interval_seconds, sleep=sleep)  # type: ignore[arg-type]
    monitor.read_charging_state()

    workspace = WorkspaceManager(WorkspaceLayout.from_config(config))
    workspace.prepare()
    source_present = workspace.has_source_checkout()
    if source_present and confirmer.confirm(DELETE_SOURCE_QUESTION):
        workspace.discard_source()
        source_present = False

    events = bench(
        config,
        monitor=monitor,
        source_present=source_present,
        max_iterations=namespace.max_iterations,
        workspace=workspace,
        **collaborators,
    )
    try:
        for line in events:
            emit(line)
    except KeyboardInterrupt:
        final_score = ScoreLedger(config.root_dir).latest_run()
        _log.info("Benchmark interrupted final_score=%s", final_score)
        emit(f"Benchmark interrupted. Final score: {final_score}")
        return int(ExitCode.INTERRUPTED)
    return int(ExitCode.SUCCESS)


def main(
    argv: Sequence[str] | None = None,
    *,
    confirmer: Confirmer | None = None,
    **collaborators: object,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    logger = configure_logging(level=namespace.log_level, log_file=log_path)

    resolved_confirmer = confirmer or (AssumeYesConfirmer() if namespace.yes else ConsoleConfirmer())
    try:
        return run_cli_flow(namespace, confirmer=resolved_confirmer, **collaborators)
    except UserDeclined as exc:
        logger.info("Benchmark cancelled by operator: %s", exc.message)
        print(user_facing_error(exc.message, hint=exc.hint, level="WARNING"), file=sys.stderr)
        return int(exc.code)
    except BatteryBenchError as exc:
        logger.error(
            "Handled BatteryBenchError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except KeyboardInterrupt:
        logger.info("Benchmark interrupted before the run started")
        return int(ExitCode.INTERRUPTED)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        print(
            user_facing_error("Unexpected runtime failure", hint=f"Inspect logs: {log_path}"),
            file=sys.stderr,
        )
        return int(ExitCode.FAILURE)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
