"""Benchmark workspace layout and directory operations."""

from __future__ import annotations

import logging as py_logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from batterybench.config import RunConfiguration
from batterybench.errors import WorkspaceIOError

logger = py_logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkspaceLayout:
    root: Path
    source_dir: Path
    build_dir: Path

    @classmethod
    def from_config(cls, config: RunConfiguration) -> WorkspaceLayout:
        return cls(root=config.root_dir, source_dir=config.source_dir, build_dir=config.build_dir)


class WorkspaceManager:
    """Create, copy and remove the directories under the benchmark root.

    Every operation takes explicit paths; the process working directory is
    never changed.
    """

    def __init__(self, layout: WorkspaceLayout) -> None:
        self.layout = layout

    @staticmethod
    def ensure_root_exists(path: str | Path) -> Path:
        resolved = Path(path)
        try:
            resolved.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Failed to create directory path=%s error=%s", resolved, exc)
            raise WorkspaceIOError(
                f"Could not create directory {resolved}",
                hint=str(exc),
            ) from exc
        return resolved

    @staticmethod
    def remove_stale(path: str | Path) -> bool:
        """Remove a directory tree. Returns False when there was nothing to remove."""
        resolved = Path(path)
        if not resolved.exists() and not resolved.is_symlink():
            return False
        logger.debug("Removing directory path=%s", resolved)
        try:
            if resolved.is_dir() and not resolved.is_symlink():
                shutil.rmtree(resolved)
            else:
                resolved.unlink()
        except OSError as exc:
            logger.error("Failed to remove directory path=%s error=%s", resolved, exc)
            raise WorkspaceIOError(
                f"Could not remove {resolved}",
                hint="Check permissions on the benchmark directory and remove it manually.",
            ) from exc
        return True

    @staticmethod
    def copy_tree(source: str | Path, destination: str | Path) -> Path:
        source_path = Path(source)
        destination_path = Path(destination)
        logger.debug("Copying tree source=%s destination=%s", source_path, destination_path)
        try:
            shutil.copytree(source_path, destination_path, symlinks=True, dirs_exist_ok=True)
        except OSError as exc:
            logger.error(
                "Failed to copy tree source=%s destination=%s error=%s",
                source_path,
                destination_path,
                exc,
            )
            raise WorkspaceIOError(
                f"Could not copy {source_path} to {destination_path}",
                hint="Check free disk space and permissions in the benchmark directory.",
            ) from exc
        return destination_path

    def has_source_checkout(self) -> bool:
        source = self.layout.source_dir
        if not source.is_dir():
            return False
        return any(source.iterdir())

    def prepare(self) -> None:
        self.ensure_root_exists(self.layout.root)

    def discard_source(self) -> None:
        self.remove_stale(self.layout.source_dir)

    def copy_source_to_build(self) -> Path:
        return self.copy_tree(self.layout.source_dir, self.layout.build_dir)

    def remove_build(self) -> bool:
        return self.remove_stale(self.layout.build_dir)
