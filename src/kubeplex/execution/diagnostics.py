"""Failure diagnostics — capture the output of a failed pod."""

from __future__ import annotations

import logging

from kubeplex.execution.runtimes._types import JobHandle, RuntimeAdapter

logger = logging.getLogger(__name__)


async def collect_logs(adapter: RuntimeAdapter, handle: JobHandle) -> str:
    """Read the full log stream of ``handle`` into one string.

    Lines keep their terminators, so the result is the pod output verbatim.

    Raises:
        DiagnosticsError: If the stream cannot be fetched or read. Not
            suppressed: a failure here is fatal to the process.
    """
    lines = [line async for line in adapter.logs(handle)]
    logger.debug("collected %d log lines from %s", len(lines), handle)
    return "".join(lines)
