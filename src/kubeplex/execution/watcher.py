"""Lifecycle watcher — polls a pod until it reaches a terminal phase.

.. code-block:: text

    ┌──────────┐  sleep(interval)  ┌────────────┐
    │  start   │ ────────────────► │ status()   │
    └──────────┘                   └─────┬──────┘
                                         │
          Pending / Running ─────────────┤ loop
          Unknown ── log warning ────────┤ loop
          Succeeded / Failed ────────────┴─► return JobStatus
          fetch error ───────────────────────► raise PollError

Cancellation is cooperative: cancelling the task interrupts the sleep
or the in-flight fetch and ``asyncio.CancelledError`` propagates. There
is no overall timeout.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from kubeplex.execution.runtimes._types import (
    JobHandle,
    JobStatus,
    Phase,
    RuntimeAdapter,
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


async def wait_for_completion(
    adapter: RuntimeAdapter,
    handle: JobHandle,
    *,
    interval: float = DEFAULT_POLL_INTERVAL,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> JobStatus:
    """Poll ``handle`` every ``interval`` seconds until Succeeded or Failed.

    Returns:
        The terminal JobStatus.

    Raises:
        PollError: On the first failed status fetch.
    """
    while True:
        await sleep(interval)
        status = await adapter.status(handle)

        if status.phase is Phase.UNKNOWN:
            logger.warning("warning: pod %r is in an unknown state", handle.name)
        elif status.is_terminal:
            logger.info("pod %r reached phase %s", handle.name, status.phase.value)
            return status
        else:
            logger.debug("pod %r is %s", handle.name, status.phase.value)
