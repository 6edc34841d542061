"""Per-run score records persisted as plain decimal text files."""

from __future__ import annotations

import logging as py_logging
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from batterybench.errors import ScoreLedgerError

logger = py_logging.getLogger(__name__)

RECORD_PREFIX = "benchmark-"
RECORD_SUFFIX = ".log"
RUN_ID_FORMAT = "%Y-%m-%d_%H-%M-%S"

# benchmark-2024-01-31_10-00-05.log
_ISO_RUN_ID = re.compile(r"^(\d{4}-\d{2}-\d{2})_(\d{2}-\d{2}(?:-\d{2})?)$")
# benchmark-31-01-2024_10:00.log, written by older releases
_LEGACY_RUN_ID = re.compile(r"^(\d{2})-(\d{2})-(\d{4})_(\d{2}):(\d{2})(?::(\d{2}))?$")


@dataclass(frozen=True)
class ScoreEntry:
    run_id: str
    date: str
    time: str
    score: int


def run_id_for(moment: datetime) -> str:
    return moment.strftime(RUN_ID_FORMAT)


def record_name(run_id: str) -> str:
    return f"{RECORD_PREFIX}{run_id}{RECORD_SUFFIX}"


def parse_run_id(run_id: str) -> tuple[str, str] | None:
    """Split a run id into sortable ``(date, time)`` strings, or None if unrecognized."""
    match = _ISO_RUN_ID.match(run_id)
    if match:
        date, clock = match.groups()
        if clock.count("-") == 1:
            clock = f"{clock}-00"
        return date, clock.replace("-", ":")
    match = _LEGACY_RUN_ID.match(run_id)
    if match:
        day, month, year, hour, minute, second = match.groups()
        return f"{year}-{month}-{day}", f"{hour}:{minute}:{second or '00'}"
    return None


def _parse_score(text: str, path: Path) -> int:
    value = text.strip()
    if not value.isdigit():
        raise ScoreLedgerError(
            f"Score record {path.name} is corrupt",
            hint=f"Expected a non-negative integer, found {value[:32]!r}.",
        )
    return int(value)


class ScoreLedger:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def record_path(self, run_id: str) -> Path:
        return self.root / record_name(run_id)

    def start_run(self, moment: datetime | None = None) -> str:
        run_id = run_id_for(moment or datetime.now())
        path = self.record_path(run_id)
        if path.exists():
            logger.warning("Score record already exists, resetting path=%s", path)
            try:
                path.unlink()
            except OSError as exc:
                raise ScoreLedgerError(f"Could not reset score record {path.name}", hint=str(exc)) from exc
        logger.debug("Started score record run_id=%s", run_id)
        return run_id

    def read(self, run_id: str) -> int:
        path = self.record_path(run_id)
        try:
            text = path.read_text(encoding="ascii")
        except FileNotFoundError:
            return 0
        except (OSError, UnicodeDecodeError) as exc:
            raise ScoreLedgerError(f"Could not read score record {path.name}", hint=str(exc)) from exc
        return _parse_score(text, path)

    def _write(self, path: Path, value: int) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".score-", dir=path.parent)
            try:
                with os.fdopen(fd, "w", encoding="ascii") as handle:
                    handle.write(str(value))
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise ScoreLedgerError(f"Could not write score record {path.name}", hint=str(exc)) from exc

    def increment(self, run_id: str) -> int:
        score = self.read(run_id) + 1
        self._write(self.record_path(run_id), score)
        logger.debug("Score incremented run_id=%s score=%s", run_id, score)
        return score

    def list_records(self) -> list[ScoreEntry]:
        if not self.root.is_dir():
            return []
        entries: list[ScoreEntry] = []
        for path in sorted(self.root.iterdir()):
            name = path.name
            if not (name.startswith(RECORD_PREFIX) and name.endswith(RECORD_SUFFIX)) or not path.is_file():
                continue
            run_id = name[len(RECORD_PREFIX) : -len(RECORD_SUFFIX)]
            stamp = parse_run_id(run_id)
            if stamp is None:
                logger.debug("Skipping score record with unrecognized name path=%s", path)
                continue
            try:
                score = self.read(run_id)
            except ScoreLedgerError as exc:
                logger.warning("Skipping unreadable score record path=%s reason=%s", path, exc)
                continue
            entries.append(ScoreEntry(run_id=run_id, date=stamp[0], time=stamp[1], score=score))
        return entries

    def highest_across_all_runs(self) -> int:
        return max((entry.score for entry in self.list_records()), default=0)

    def latest_run(self) -> int:
        latest: ScoreEntry | None = None
        for entry in self.list_records():
            if latest is None or entry.date > latest.date:
                latest = entry
            elif entry.date == latest.date and entry.time > latest.time:
                latest = entry
        return latest.score if latest is not None else 0


def highest_across_all_runs(root: str | Path) -> int:
    return ScoreLedger(root).highest_across_all_runs()


def latest_run(root: str | Path) -> int:
    return ScoreLedger(root).latest_run()
