"""Yes/no confirmation collaborators."""

from __future__ import annotations

import logging as py_logging
import sys
from collections.abc import Callable, Iterable
from typing import Protocol, TextIO

logger = py_logging.getLogger(__name__)


class Confirmer(Protocol):
    def confirm(self, question: str) -> bool: ...


class ConsoleConfirmer:
    """Ask on the terminal; only an explicit ``y``/``yes`` counts as consent."""

    def __init__(
        self,
        *,
        reader: Callable[[], str] | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self._reader = reader or sys.stdin.readline
        self._stream = stream or sys.stdout

    def confirm(self, question: str) -> bool:
        self._stream.write(f"{question} [Y/N] ")
        self._stream.flush()
        answer = self._reader()
        accepted = answer.strip().lower() in {"y", "yes"}
        logger.debug("Prompt answered question=%r accepted=%s", question, accepted)
        return accepted


class AssumeYesConfirmer:
    def confirm(self, question: str) -> bool:
        logger.debug("Prompt auto-accepted question=%r", question)
        return True


class ScriptedConfirmer:
    """Replay a fixed list of answers; used for headless runs and tests."""

    def __init__(self, answers: Iterable[bool]) -> None:
        self._answers = list(answers)
        self.questions: list[str] = []

    def confirm(self, question: str) -> bool:
        self.questions.append(question)
        if not self._answers:
            logger.warning("No scripted answer left, declining question=%r", question)
            return False
        return self._answers.pop(0)
