from __future__ import annotations

import pytest

from batterybench.channel import ChannelClosedError, EventChannel, run_producer
from batterybench.errors import ExternalProcessError


def test_channel_yields_lines_in_order_until_closed() -> None:
    channel = EventChannel()
    for line in ("Copying repo", "Building", "Build successful!"):
        channel.send(line)
    channel.close()

    assert list(channel) == ["Copying repo", "Building", "Build successful!"]
    assert channel.closed is True


def test_send_after_close_is_rejected() -> None:
    channel = EventChannel()
    channel.close()

    with pytest.raises(ChannelClosedError):
        channel.send("late")


def test_failure_is_raised_after_pending_lines() -> None:
    channel = EventChannel()
    channel.send("Building")
    channel.fail(ExternalProcessError("Build failed"))
    received: list[str] = []

    with pytest.raises(ExternalProcessError):
        for line in channel:
            received.append(line)

    assert received == ["Building"]


def test_run_producer_closes_channel_when_worker_returns() -> None:
    def work(channel: EventChannel) -> None:
        for index in range(100):
            channel.send(str(index))

    assert list(run_producer(work)) == [str(index) for index in range(100)]


def test_run_producer_propagates_worker_errors() -> None:
    def work(channel: EventChannel) -> None:
        channel.send("Copying repo")
        raise ExternalProcessError("Build failed")

    events = run_producer(work)

    assert next(iter(events)) == "Copying repo"
    with pytest.raises(ExternalProcessError):
        list(events)
