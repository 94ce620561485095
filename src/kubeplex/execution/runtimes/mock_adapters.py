"""Mock runtime adapters for lifecycle tests.

Each adapter simulates one behaviour of a real cluster so the watcher
and the orchestrator can be tested without Kubernetes.

.. code-block:: text

    BaseRuntimeAdapter
    ├── SequenceAdapter   ← scripted phase sequence, records every call
    └── FailingAdapter    ← raises at a chosen lifecycle stage

Example::

    adapter = SequenceAdapter(phases=["Pending", "Running", "Succeeded"])
    handle = await adapter.submit(spec)
    await adapter.status(handle)  # Pending
    await adapter.status(handle)  # Running
    await adapter.status(handle)  # Succeeded
    await adapter.status(handle)  # Succeeded (stays at last)
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from typing import Literal

from kubeplex.execution.runtimes._base import BaseRuntimeAdapter
from kubeplex.execution.runtimes._types import (
    ContainerJobSpec,
    JobHandle,
    JobStatus,
    Phase,
)

Stage = Literal["submit", "status", "logs", "cleanup"]


class SequenceAdapter(BaseRuntimeAdapter):
    """Adapter that returns a scripted sequence of phases.

    Each call to ``status()`` advances to the next phase in the
    sequence. The last phase is returned for all subsequent calls.

    Every call is appended to ``calls`` as ``(method, handle_name)`` so
    tests can assert on exact call counts and ordering.
    """

    def __init__(
        self,
        *,
        phases: list[str] | None = None,
        logs: list[str] | None = None,
    ) -> None:
        self._phases = [Phase.parse(p) for p in (phases or ["Pending", "Running", "Succeeded"])]
        self._logs = logs if logs is not None else ["frame=1\n", "Conversion failed!\n"]
        self._index: dict[str, int] = {}
        self.submitted: list[ContainerJobSpec] = []
        self.calls: list[tuple[str, str]] = []

    @property
    def runtime_name(self) -> str:
        return "sequence"

    def count(self, method: str) -> int:
        """Number of recorded calls to ``method``."""
        return sum(1 for name, _ in self.calls if name == method)

    async def _do_submit(self, spec: ContainerJobSpec) -> JobHandle:
        handle = JobHandle(
            name=f"{spec.generate_name}{uuid.uuid4().hex[:5]}",
            namespace=spec.namespace,
        )
        self.submitted.append(spec)
        self._index[handle.name] = 0
        self.calls.append(("submit", handle.name))
        return handle

    async def _do_status(self, handle: JobHandle) -> JobStatus:
        self.calls.append(("status", handle.name))
        idx = self._index.get(handle.name, 0)
        phase = self._phases[min(idx, len(self._phases) - 1)]
        self._index[handle.name] = idx + 1
        return JobStatus(phase=phase)

    async def _do_logs(self, handle: JobHandle) -> AsyncIterator[str]:
        self.calls.append(("logs", handle.name))
        for line in self._logs:
            yield line

    async def _do_cleanup(self, handle: JobHandle) -> None:
        self.calls.append(("cleanup", handle.name))


class FailingAdapter(SequenceAdapter):
    """Sequence adapter that raises a plain exception at one stage.

    The base class wraps it into the typed error of that stage, which is
    exactly what a real client error looks like to the orchestrator.
    """

    def __init__(
        self,
        *,
        fail_on: Stage,
        error: Exception | None = None,
        phases: list[str] | None = None,
        logs: list[str] | None = None,
    ) -> None:
        super().__init__(phases=phases or ["Failed"], logs=logs)
        self.fail_on = fail_on
        self.error = error or ConnectionError(f"injected {fail_on} failure")

    async def _do_submit(self, spec: ContainerJobSpec) -> JobHandle:
        if self.fail_on == "submit":
            self.calls.append(("submit", spec.generate_name))
            raise self.error
        return await super()._do_submit(spec)

    async def _do_status(self, handle: JobHandle) -> JobStatus:
        if self.fail_on == "status":
            self.calls.append(("status", handle.name))
            raise self.error
        return await super()._do_status(handle)

    async def _do_logs(self, handle: JobHandle) -> AsyncIterator[str]:
        if self.fail_on == "logs":
            self.calls.append(("logs", handle.name))
            raise self.error
        async for line in super()._do_logs(handle):
            yield line

    async def _do_cleanup(self, handle: JobHandle) -> None:
        await super()._do_cleanup(handle)
        if self.fail_on == "cleanup":
            raise self.error
