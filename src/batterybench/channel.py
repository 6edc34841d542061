"""Ordered single-producer/single-consumer event channel."""

from __future__ import annotations

import logging as py_logging
import queue
import threading
from collections.abc import Callable, Iterator

logger = py_logging.getLogger(__name__)

_CLOSED = object()


class ChannelClosedError(RuntimeError):
    """Raised when sending on a channel that was already closed."""


class _Failure:
    __slots__ = ("error",)

    def __init__(self, error: BaseException) -> None:
        self.error = error


class EventChannel:
    """Unbounded FIFO of progress lines.

    The producer calls :meth:`send` and finally :meth:`close` or :meth:`fail`.
    Iterating yields lines in send order and stops at close; a failure is
    re-raised to the consumer after every line sent before it.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[object] = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, line: str) -> None:
        if self._closed.is_set():
            raise ChannelClosedError("Cannot send on a closed channel")
        self._queue.put(line)

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        self._queue.put(_CLOSED)

    def fail(self, error: BaseException) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        self._queue.put(_Failure(error))

    def __iter__(self) -> Iterator[str]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            if isinstance(item, _Failure):
                raise item.error
            yield item  # type: ignore[misc]


def run_producer(target: Callable[[EventChannel], None], *, name: str = "batterybench-worker") -> EventChannel:
    """Run ``target`` on a daemon thread feeding a fresh channel."""
    channel = EventChannel()

    def _worker() -> None:
        try:
            target(channel)
        except BaseException as exc:
            logger.debug("Worker stopped with error=%r", exc)
            channel.fail(exc)
        else:
            channel.close()

    thread = threading.Thread(target=_worker, name=name, daemon=True)
    thread.start()
    return channel
