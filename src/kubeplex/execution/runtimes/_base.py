"""Base runtime adapter with shared lifecycle logic.

Provides ``BaseRuntimeAdapter`` with common patterns (logging, error
wrapping) and ``StubRuntimeAdapter`` for unit tests.

Architecture:

    .. code-block:: text

        RuntimeAdapter (Protocol)
              │
              ▼
        BaseRuntimeAdapter (Abstract Base)
        ├── submit()  → logging + SubmitError       → _do_submit()
        ├── status()  → PollError                   → _do_status()
        ├── logs()    → DiagnosticsError            → _do_logs()
        └── cleanup() → logging + CleanupError      → _do_cleanup()
              │
        ┌─────┴───────────────────────┐
        │                             │
        ▼                             ▼
    KubernetesPodAdapter        StubRuntimeAdapter
    (real pods)                 (in-memory for tests)

    Every wrapper converts unexpected exceptions into the typed error of
    its stage. Nothing is swallowed: a failed delete is as fatal as a
    failed create, since an orphaned pod keeps transcoding.

Usage:
    adapter = StubRuntimeAdapter()
    handle = await adapter.submit(spec)
    status = await adapter.status(handle)
    assert status.phase is Phase.SUCCEEDED

Tags:
    kube-plex, execution, runtimes, base, adapter-ABC

Doc-Types:
    api-reference
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from kubeplex.core.errors import (
    CleanupError,
    DiagnosticsError,
    PollError,
    SubmitError,
)
from kubeplex.execution.runtimes._types import (
    ContainerJobSpec,
    JobHandle,
    JobStatus,
    Phase,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base adapter
# ---------------------------------------------------------------------------

class BaseRuntimeAdapter:
    """Base class for runtime adapters with shared lifecycle logic.

    Subclasses MUST implement:
        _do_submit, _do_status, _do_logs, _do_cleanup

    .. code-block:: text

        submit(spec)
          ├── log: "Submitting pod 'X' to kubernetes"
          ├── _do_submit(spec)  ← subclass implements
          ├── log: "Pod submitted: plex/X-abc12"
          └── on error: raise SubmitError

        cleanup(handle)
          ├── log: "Deleting pod plex/X-abc12"
          ├── _do_cleanup(handle)  ← subclass implements
          └── on error: raise CleanupError (no second attempt)
    """

    @property
    def runtime_name(self) -> str:
        """Unique name for this runtime."""
        raise NotImplementedError

    async def submit(self, spec: ContainerJobSpec) -> JobHandle:
        """Submit the pod with logging and error wrapping."""
        logger.info(
            "Submitting pod '%s' to %s (image=%s, namespace=%s)",
            spec.generate_name, self.runtime_name, spec.image, spec.namespace,
        )
        try:
            handle = await self._do_submit(spec)
        except SubmitError:
            raise
        except Exception as exc:
            logger.error(
                "Submit failed for '%s' on %s: %s",
                spec.generate_name, self.runtime_name, exc,
            )
            raise SubmitError(
                f"Submit failed: {exc}", cause=exc,
            ).with_context(
                job_name=spec.generate_name, namespace=spec.namespace,
            ) from exc
        logger.info("Pod submitted to %s: %s", self.runtime_name, handle)
        return handle

    async def status(self, handle: JobHandle) -> JobStatus:
        """Get pod status."""
        try:
            return await self._do_status(handle)
        except PollError:
            raise
        except Exception as exc:
            raise PollError(
                f"Status fetch failed for {handle}: {exc}", cause=exc,
            ).with_context(
                job_name=handle.name, namespace=handle.namespace,
            ) from exc

    async def logs(self, handle: JobHandle) -> AsyncIterator[str]:
        """Fetch the captured output of the pod, line by line."""
        try:
            async for line in self._do_logs(handle):
                yield line
        except DiagnosticsError:
            raise
        except Exception as exc:
            raise DiagnosticsError(
                f"Reading logs failed for {handle}: {exc}", cause=exc,
            ).with_context(
                job_name=handle.name, namespace=handle.namespace,
            ) from exc

    async def cleanup(self, handle: JobHandle) -> None:
        """Delete the pod with logging. Failure is fatal."""
        logger.info("Deleting pod %s on %s", handle, self.runtime_name)
        try:
            await self._do_cleanup(handle)
        except CleanupError:
            raise
        except Exception as exc:
            logger.error("Cleanup failed for %s: %s", handle, exc)
            raise CleanupError(
                f"Deleting pod {handle} failed: {exc}", cause=exc,
            ).with_context(
                job_name=handle.name, namespace=handle.namespace,
            ) from exc
        logger.info("Cleanup complete for %s", handle)

    # --- Abstract methods for subclasses ---

    async def _do_submit(self, spec: ContainerJobSpec) -> JobHandle:
        """Implement in subclass. Return the handle of the created pod."""
        raise NotImplementedError

    async def _do_status(self, handle: JobHandle) -> JobStatus:
        """Implement in subclass."""
        raise NotImplementedError

    async def _do_logs(self, handle: JobHandle) -> AsyncIterator[str]:
        """Implement in subclass. Yield log lines with their terminators."""
        raise NotImplementedError
        # Make this a proper async generator
        yield  # pragma: no cover

    async def _do_cleanup(self, handle: JobHandle) -> None:
        """Implement in subclass."""
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Stub adapter for testing
# ---------------------------------------------------------------------------

@dataclass
class _StubJob:
    """Internal state for a stubbed pod."""

    spec: ContainerJobSpec
    handle: JobHandle
    phase: Phase = Phase.PENDING
    logs: list[str] = field(default_factory=list)
    deleted: bool = False


class StubRuntimeAdapter(BaseRuntimeAdapter):
    """In-memory runtime adapter for unit tests.

    Every submitted pod is immediately in its end phase.

    .. code-block:: text

        submit(spec)
          ├── auto_succeed=True  → phase=Succeeded
          └── auto_succeed=False → phase=Failed

        Inject failures:
          adapter.fail_submit = True   → submit() raises SubmitError
          adapter.fail_status = True   → status() raises PollError
          adapter.fail_logs = True     → logs() raises DiagnosticsError
          adapter.fail_cleanup = True  → cleanup() raises CleanupError

        Track usage:
          adapter.submit_count, status_count, logs_count, cleanup_count
    """

    def __init__(
        self,
        *,
        auto_succeed: bool = True,
        auto_logs: list[str] | None = None,
    ) -> None:
        self.auto_succeed = auto_succeed
        self.auto_logs = auto_logs or ["[stub] transcode started\n", "[stub] transcode finished\n"]

        self.jobs: dict[str, _StubJob] = {}
        self.submit_count: int = 0
        self.status_count: int = 0
        self.logs_count: int = 0
        self.cleanup_count: int = 0

        self.fail_submit: bool = False
        self.fail_status: bool = False
        self.fail_logs: bool = False
        self.fail_cleanup: bool = False

    @property
    def runtime_name(self) -> str:
        return "stub"

    def _new_handle(self, spec: ContainerJobSpec) -> JobHandle:
        return JobHandle(
            name=f"{spec.generate_name}{uuid.uuid4().hex[:5]}",
            namespace=spec.namespace,
        )

    async def _do_submit(self, spec: ContainerJobSpec) -> JobHandle:
        self.submit_count += 1
        if self.fail_submit:
            raise SubmitError("Stub: submit failure injected")
        handle = self._new_handle(spec)
        self.jobs[handle.name] = _StubJob(
            spec=spec,
            handle=handle,
            phase=Phase.SUCCEEDED if self.auto_succeed else Phase.FAILED,
            logs=list(self.auto_logs),
        )
        return handle

    async def _do_status(self, handle: JobHandle) -> JobStatus:
        self.status_count += 1
        if self.fail_status:
            raise PollError("Stub: status failure injected")
        job = self.jobs.get(handle.name)
        if not job:
            return JobStatus(phase=Phase.UNKNOWN, message=f"No stub pod: {handle}")
        return JobStatus(phase=job.phase)

    async def _do_logs(self, handle: JobHandle) -> AsyncIterator[str]:
        self.logs_count += 1
        if self.fail_logs:
            raise DiagnosticsError("Stub: log failure injected")
        job = self.jobs.get(handle.name)
        if not job:
            return
        for line in job.logs:
            yield line

    async def _do_cleanup(self, handle: JobHandle) -> None:
        self.cleanup_count += 1
        if self.fail_cleanup:
            raise CleanupError("Stub: cleanup failure injected")
        job = self.jobs.get(handle.name)
        if job:
            job.deleted = True
