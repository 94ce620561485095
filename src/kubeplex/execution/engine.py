"""Job Engine — orchestrates one remote transcode from invocation to cleanup.

Architecture:

    .. code-block:: text

        JobEngine.run(invocation, stop)
        ┌─────────────────────────────────────────────────────────────┐
        │  prepare(invocation)                     (no cluster calls) │
        │    ├── rewrite_invocation  → argv/env for the pod           │
        │    ├── build_job_spec      → ContainerJobSpec               │
        │    └── SpecValidator       → ContractError on violations    │
        │                                                             │
        │  adapter.submit(spec) → JobHandle        SubmitError: abort │
        │                                                             │
        │  race ─┬─ wait_for_completion(handle)    PollError: fatal   │
        │        └─ stop.wait()                    → CANCELLED        │
        │                                                             │
        │  Failed → collect_logs(handle)           DiagnosticsError   │
        │                                                             │
        │  finally: adapter.cleanup(handle)        CleanupError       │
        └─────────────────────────────────────────────────────────────┘

    .. mermaid::

        sequenceDiagram
            participant M as main
            participant E as JobEngine
            participant W as watcher task
            participant A as RuntimeAdapter

            M->>E: run(invocation, stop)
            E->>A: submit(spec)
            A-->>E: JobHandle
            E->>W: start polling
            alt terminal phase
                W-->>E: JobStatus
            else stop signal
                E->>W: cancel
            end
            opt Failed
                E->>A: logs(handle)
            end
            E->>A: cleanup(handle)
            E-->>M: RunResult

Only the engine issues log-fetch and delete calls; the watcher task only
reads status. Cleanup runs exactly once for every submitted pod,
including when a fatal error or an upstream cancellation ends the run.

Example:
    >>> engine = JobEngine(adapter, settings)
    >>> result = await engine.run(Invocation.capture(settings), stop)
    >>> result.outcome
    <RunOutcome.SUCCEEDED: 'succeeded'>

Tags:
    kube-plex, execution, engine, orchestration, lifecycle

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from kubeplex.core.errors import JobFailedError
from kubeplex.core.logging import LogContext, get_logger
from kubeplex.execution.builder import build_job_spec
from kubeplex.execution.diagnostics import collect_logs
from kubeplex.execution.rewrite import rewrite_invocation
from kubeplex.execution.runtimes._types import (
    ContainerJobSpec,
    JobHandle,
    JobStatus,
    Phase,
    RuntimeAdapter,
    redact_spec,
)
from kubeplex.execution.runtimes.validator import SpecValidator
from kubeplex.execution.watcher import wait_for_completion

if TYPE_CHECKING:
    from kubeplex.core.config import TranscoderSettings
    from kubeplex.execution.invocation import Invocation

logger = get_logger(__name__)


class RunOutcome(str, Enum):
    """How a run ended, for runs that did not hit a fatal error."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class RunResult:
    """Result returned by ``JobEngine.run()``.

    Attributes:
        outcome: Terminal outcome of the run.
        handle: The pod that was submitted (already deleted).
        status: Terminal status, None when cancelled.
        logs: Captured pod output, only for FAILED.
    """

    outcome: RunOutcome
    handle: JobHandle
    status: JobStatus | None = None
    logs: str | None = None

    @property
    def exit_code(self) -> int:
        return 0 if self.outcome is RunOutcome.SUCCEEDED else 1

    def raise_for_outcome(self) -> None:
        """Raise ``JobFailedError`` for a FAILED run."""
        if self.outcome is RunOutcome.FAILED:
            message = self.status.message if self.status and self.status.message else "pod failed"
            raise JobFailedError(
                f"pod {self.handle.name!r} failed: {message}",
                logs=self.logs or "",
            ).with_context(job_name=self.handle.name, namespace=self.handle.namespace)


class JobEngine:
    """Runs one invocation as a pod and guarantees its deletion.

    Args:
        adapter: Runtime adapter used for every cluster call.
        settings: Process settings (claims, image, namespace, limits).
        validator: Pre-submit validator. Default: ``SpecValidator()``.
        poll_interval: Seconds between status polls. Default: from settings.
        sleep: Awaitable sleep used by the watcher (tests pass a no-op).
        on_pod_logs: Called with the output of a failed pod before the
            pod is deleted, so it is reported even if the delete fails.
    """

    def __init__(
        self,
        adapter: RuntimeAdapter,
        settings: TranscoderSettings,
        *,
        validator: SpecValidator | None = None,
        poll_interval: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_pod_logs: Callable[[str], None] | None = None,
    ) -> None:
        self._adapter = adapter
        self._settings = settings
        self._validator = validator or SpecValidator()
        self._poll_interval = (
            settings.poll_interval_seconds if poll_interval is None else poll_interval
        )
        self._sleep = sleep
        self._on_pod_logs = on_pod_logs

    def prepare(self, invocation: Invocation) -> ContainerJobSpec:
        """Rewrite, build and validate. Makes no cluster calls.

        Raises:
            ContractError: Malformed env entry, rewrite at the vector
                boundary, or an invalid spec.
        """
        rewritten = rewrite_invocation(invocation, self._settings)
        spec = build_job_spec(rewritten, self._settings)
        self._validator.validate_or_raise(spec)
        logger.debug("pod_spec_built", spec=redact_spec(spec))
        return spec

    async def run(
        self,
        invocation: Invocation,
        stop: asyncio.Event | None = None,
    ) -> RunResult:
        """Execute ``invocation`` remotely and return its outcome.

        Raises:
            ContractError, SubmitError, PollError, DiagnosticsError,
            CleanupError: fatal conditions, see ``kubeplex.core.errors``.
        """
        spec = self.prepare(invocation)
        handle = await self._adapter.submit(spec)
        logger.info("started_pod", job_name=handle.name, namespace=handle.namespace)

        async with LogContext(job_name=handle.name, namespace=handle.namespace):
            try:
                return await self._supervise(handle, stop or asyncio.Event())
            finally:
                logger.info("cleaning_up_pod")
                await self._adapter.cleanup(handle)

    async def _supervise(self, handle: JobHandle, stop: asyncio.Event) -> RunResult:
        status = await self._wait(handle, stop)
        if status is None:
            logger.info("exit_requested")
            return RunResult(outcome=RunOutcome.CANCELLED, handle=handle)

        if status.phase is Phase.SUCCEEDED:
            return RunResult(outcome=RunOutcome.SUCCEEDED, handle=handle, status=status)

        logger.error("pod_failed", **status.to_dict())
        logs = await collect_logs(self._adapter, handle)
        logger.info("pod_logs_collected", size=len(logs))
        if self._on_pod_logs is not None:
            self._on_pod_logs(logs)
        return RunResult(outcome=RunOutcome.FAILED, handle=handle, status=status, logs=logs)

    async def _wait(self, handle: JobHandle, stop: asyncio.Event) -> JobStatus | None:
        """Race the watcher against the stop event. None means stop won."""
        watcher = asyncio.create_task(
            wait_for_completion(
                self._adapter, handle, interval=self._poll_interval, sleep=self._sleep,
            ),
            name=f"watch-{handle.name}",
        )
        stopper = asyncio.create_task(stop.wait(), name="stop-signal")
        try:
            done, _ = await asyncio.wait(
                {watcher, stopper}, return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            pending = [task for task in (watcher, stopper) if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.wait(pending)

        if watcher in done:
            return watcher.result()
        return None
