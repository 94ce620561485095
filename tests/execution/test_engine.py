"""Tests for JobEngine — submit, supervise, diagnose, always clean up."""

from __future__ import annotations

import asyncio
import dataclasses
from unittest.mock import patch

import pytest

from kubeplex.core.errors import (
    CleanupError,
    ContractError,
    DiagnosticsError,
    JobFailedError,
    PollError,
    SubmitError,
)
from kubeplex.execution.engine import JobEngine, RunOutcome, RunResult
from kubeplex.execution.runtimes._base import StubRuntimeAdapter
from kubeplex.execution.runtimes._types import JobHandle, JobStatus, Phase
from kubeplex.execution.runtimes.mock_adapters import FailingAdapter, SequenceAdapter


# ── Helpers ──────────────────────────────────────────────────────────────


async def _no_sleep(_: float) -> None:
    await asyncio.sleep(0)


def _engine(adapter, settings, **kwargs) -> JobEngine:
    return JobEngine(adapter, settings, sleep=_no_sleep, **kwargs)


# ── RunResult ────────────────────────────────────────────────────────────


class TestRunResult:
    HANDLE = JobHandle(name="pod-1", namespace="plex")

    def test_exit_codes(self):
        assert RunResult(outcome=RunOutcome.SUCCEEDED, handle=self.HANDLE).exit_code == 0
        assert RunResult(outcome=RunOutcome.FAILED, handle=self.HANDLE).exit_code == 1
        assert RunResult(outcome=RunOutcome.CANCELLED, handle=self.HANDLE).exit_code == 1

    def test_raise_for_outcome(self):
        result = RunResult(
            outcome=RunOutcome.FAILED,
            handle=self.HANDLE,
            status=JobStatus(phase=Phase.FAILED, message="OOMKilled"),
            logs="Conversion failed!",
        )
        with pytest.raises(JobFailedError) as exc_info:
            result.raise_for_outcome()
        assert exc_info.value.logs == "Conversion failed!"
        assert "OOMKilled" in exc_info.value.message

    def test_raise_for_outcome_success_is_noop(self):
        RunResult(outcome=RunOutcome.SUCCEEDED, handle=self.HANDLE).raise_for_outcome()


# ── prepare ──────────────────────────────────────────────────────────────


class TestPrepare:
    def test_rewrites_before_building(self, invocation, settings):
        spec = _engine(StubRuntimeAdapter(), settings).prepare(invocation)
        assert spec.command[2] == "debug"
        assert spec.command[6].startswith("http://plex.plex.svc:32400/")

    def test_contract_error_before_any_cluster_call(self, invocation, settings):
        adapter = SequenceAdapter()
        bad = dataclasses.replace(invocation, env=("BROKEN",))
        with pytest.raises(ContractError):
            asyncio.run(_engine(adapter, settings).run(bad))
        assert adapter.calls == []


# ── run: terminal outcomes ───────────────────────────────────────────────


class TestRunOutcomes:
    @pytest.mark.asyncio
    async def test_succeeded(self, invocation, settings):
        adapter = SequenceAdapter(phases=["Pending", "Running", "Succeeded"])
        result = await _engine(adapter, settings).run(invocation)

        assert result.outcome is RunOutcome.SUCCEEDED
        assert result.exit_code == 0
        assert result.logs is None
        assert adapter.count("logs") == 0
        assert adapter.count("cleanup") == 1
        assert adapter.calls[-1] == ("cleanup", result.handle.name)

    @pytest.mark.asyncio
    async def test_failed_collects_logs_once(self, invocation, settings):
        adapter = SequenceAdapter(phases=["Running", "Failed"], logs=["frame=1\n", "Conversion failed!\n"])
        result = await _engine(adapter, settings).run(invocation)

        assert result.outcome is RunOutcome.FAILED
        assert result.exit_code == 1
        assert result.logs == "frame=1\nConversion failed!\n"
        assert adapter.count("logs") == 1
        assert [m for m, _ in adapter.calls[-2:]] == ["logs", "cleanup"]

    @pytest.mark.asyncio
    async def test_failed_logs_reported_before_cleanup(self, invocation, settings):
        adapter = SequenceAdapter(phases=["Failed"], logs=["Conversion failed!\n"])
        reported: list[tuple[str, int]] = []

        def on_pod_logs(logs: str) -> None:
            reported.append((logs, adapter.count("cleanup")))

        await _engine(adapter, settings, on_pod_logs=on_pod_logs).run(invocation)
        assert reported == [("Conversion failed!\n", 0)]

    @pytest.mark.asyncio
    async def test_failed_status_logged(self, invocation, settings):
        adapter = SequenceAdapter(phases=["Failed"])
        with patch("kubeplex.execution.engine.logger") as log:
            await _engine(adapter, settings).run(invocation)
        log.error.assert_called_once_with("pod_failed", phase="Failed")

    @pytest.mark.asyncio
    async def test_success_reports_no_logs(self, invocation, settings):
        reported: list[str] = []
        adapter = SequenceAdapter(phases=["Succeeded"])
        await _engine(adapter, settings, on_pod_logs=reported.append).run(invocation)
        assert reported == []

    @pytest.mark.asyncio
    async def test_unknown_does_not_end_run(self, invocation, settings):
        adapter = SequenceAdapter(phases=["Unknown", "Unknown", "Succeeded"])
        result = await _engine(adapter, settings).run(invocation)
        assert result.outcome is RunOutcome.SUCCEEDED
        assert adapter.count("status") == 3

    @pytest.mark.asyncio
    async def test_submits_rewritten_spec(self, invocation, settings):
        adapter = SequenceAdapter(phases=["Succeeded"])
        await _engine(adapter, settings).run(invocation)
        (spec,) = adapter.submitted
        assert spec.command[1:3] == ("-loglevel", "debug")
        assert spec.namespace == "plex"

    @pytest.mark.asyncio
    async def test_poll_interval_from_settings(self, invocation, settings):
        intervals: list[float] = []

        async def sleep(seconds: float) -> None:
            intervals.append(seconds)

        adapter = SequenceAdapter(phases=["Running", "Succeeded"])
        await JobEngine(adapter, settings, sleep=sleep).run(invocation)
        assert intervals == [5.0, 5.0]


# ── run: cancellation ────────────────────────────────────────────────────


class TestCancellation:
    @pytest.mark.asyncio
    async def test_stop_event_cancels_and_cleans_up_once(self, invocation, settings):
        adapter = SequenceAdapter(phases=["Running"])
        stop = asyncio.Event()
        engine = _engine(adapter, settings)

        task = asyncio.create_task(engine.run(invocation, stop))
        while adapter.count("status") < 2:
            await asyncio.sleep(0)
        stop.set()
        result = await task

        assert result.outcome is RunOutcome.CANCELLED
        assert result.exit_code == 1
        assert result.status is None
        assert adapter.count("cleanup") == 1
        assert adapter.count("logs") == 0

    @pytest.mark.asyncio
    async def test_stop_already_set(self, invocation, settings):
        adapter = SequenceAdapter(phases=["Running"])
        stop = asyncio.Event()
        stop.set()
        result = await JobEngine(adapter, settings, poll_interval=60.0).run(invocation, stop)
        assert result.outcome is RunOutcome.CANCELLED
        assert adapter.count("status") == 0
        assert adapter.count("cleanup") == 1

    @pytest.mark.asyncio
    async def test_upstream_cancellation_still_cleans_up(self, invocation, settings):
        adapter = SequenceAdapter(phases=["Running"])
        task = asyncio.create_task(_engine(adapter, settings).run(invocation))
        while adapter.count("status") < 1:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert adapter.count("cleanup") == 1


# ── run: fatal errors ────────────────────────────────────────────────────


class TestFatalErrors:
    @pytest.mark.asyncio
    async def test_submit_error_no_cleanup(self, invocation, settings):
        adapter = FailingAdapter(fail_on="submit")
        with pytest.raises(SubmitError):
            await _engine(adapter, settings).run(invocation)
        assert adapter.count("cleanup") == 0
        assert adapter.count("status") == 0

    @pytest.mark.asyncio
    async def test_poll_error_still_cleans_up(self, invocation, settings):
        adapter = FailingAdapter(fail_on="status")
        with pytest.raises(PollError):
            await _engine(adapter, settings).run(invocation)
        assert adapter.count("logs") == 0
        assert adapter.count("cleanup") == 1

    @pytest.mark.asyncio
    async def test_diagnostics_error_still_cleans_up(self, invocation, settings):
        adapter = FailingAdapter(fail_on="logs", phases=["Failed"])
        with pytest.raises(DiagnosticsError):
            await _engine(adapter, settings).run(invocation)
        assert adapter.count("cleanup") == 1

    @pytest.mark.asyncio
    async def test_cleanup_error_is_fatal(self, invocation, settings):
        adapter = FailingAdapter(fail_on="cleanup", phases=["Succeeded"])
        with pytest.raises(CleanupError):
            await _engine(adapter, settings).run(invocation)
        assert adapter.count("cleanup") == 1

    @pytest.mark.asyncio
    async def test_failed_logs_survive_cleanup_error(self, invocation, settings):
        adapter = FailingAdapter(fail_on="cleanup", phases=["Failed"], logs=["Conversion failed!\n"])
        reported: list[str] = []
        with pytest.raises(CleanupError):
            await _engine(adapter, settings, on_pod_logs=reported.append).run(invocation)
        assert reported == ["Conversion failed!\n"]
