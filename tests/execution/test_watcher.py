"""Tests for wait_for_completion and collect_logs."""

from __future__ import annotations

import asyncio
import logging

import pytest

from kubeplex.core.errors import DiagnosticsError, PollError
from kubeplex.execution.diagnostics import collect_logs
from kubeplex.execution.runtimes._types import ContainerJobSpec, Phase
from kubeplex.execution.runtimes.mock_adapters import FailingAdapter, SequenceAdapter
from kubeplex.execution.watcher import DEFAULT_POLL_INTERVAL, wait_for_completion


# ── Helpers ──────────────────────────────────────────────────────────────


def _spec() -> ContainerJobSpec:
    return ContainerJobSpec(
        generate_name="pms-elastic-transcoder-",
        namespace="plex",
        image="plexinc/pms-docker:latest",
        command=("Plex Transcoder",),
    )


class RecordingSleep:
    """Sleep replacement that records intervals and returns at once."""

    def __init__(self):
        self.intervals: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.intervals.append(seconds)


# ── Watcher ──────────────────────────────────────────────────────────────


class TestWaitForCompletion:
    @pytest.mark.asyncio
    async def test_returns_on_succeeded(self):
        adapter = SequenceAdapter(phases=["Pending", "Running", "Succeeded"])
        handle = await adapter.submit(_spec())
        sleep = RecordingSleep()

        status = await wait_for_completion(adapter, handle, interval=5.0, sleep=sleep)

        assert status.phase is Phase.SUCCEEDED
        assert adapter.count("status") == 3
        assert sleep.intervals == [5.0, 5.0, 5.0]

    @pytest.mark.asyncio
    async def test_returns_on_failed(self):
        adapter = SequenceAdapter(phases=["Running", "Failed"])
        handle = await adapter.submit(_spec())
        status = await wait_for_completion(adapter, handle, sleep=RecordingSleep())
        assert status.phase is Phase.FAILED

    @pytest.mark.asyncio
    async def test_sleeps_before_first_poll(self):
        adapter = SequenceAdapter(phases=["Succeeded"])
        handle = await adapter.submit(_spec())
        sleep = RecordingSleep()
        await wait_for_completion(adapter, handle, sleep=sleep)
        assert sleep.intervals == [DEFAULT_POLL_INTERVAL]
        assert adapter.count("status") == 1

    @pytest.mark.asyncio
    async def test_unknown_warns_and_continues(self, caplog):
        adapter = SequenceAdapter(phases=["Unknown", "Succeeded"])
        handle = await adapter.submit(_spec())
        with caplog.at_level(logging.WARNING, logger="kubeplex.execution.watcher"):
            status = await wait_for_completion(adapter, handle, sleep=RecordingSleep())
        assert status.phase is Phase.SUCCEEDED
        assert "unknown state" in caplog.text
        assert handle.name in caplog.text

    @pytest.mark.asyncio
    async def test_fetch_error_is_fatal(self):
        adapter = FailingAdapter(fail_on="status")
        handle = await adapter.submit(_spec())
        with pytest.raises(PollError):
            await wait_for_completion(adapter, handle, sleep=RecordingSleep())
        assert adapter.count("status") == 1

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        adapter = SequenceAdapter(phases=["Running"])
        handle = await adapter.submit(_spec())
        task = asyncio.create_task(wait_for_completion(adapter, handle, interval=0))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


# ── Diagnostics ──────────────────────────────────────────────────────────


class TestCollectLogs:
    @pytest.mark.asyncio
    async def test_joins_lines(self):
        adapter = SequenceAdapter(logs=["frame=1\n", "Conversion failed!\n"])
        handle = await adapter.submit(_spec())
        assert await collect_logs(adapter, handle) == "frame=1\nConversion failed!\n"

    @pytest.mark.asyncio
    async def test_empty(self):
        adapter = SequenceAdapter(logs=[])
        handle = await adapter.submit(_spec())
        assert await collect_logs(adapter, handle) == ""

    @pytest.mark.asyncio
    async def test_error_not_suppressed(self):
        adapter = FailingAdapter(fail_on="logs")
        handle = await adapter.submit(_spec())
        with pytest.raises(DiagnosticsError):
            await collect_logs(adapter, handle)
