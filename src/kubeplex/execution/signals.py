"""Operator stop signal.

The first SIGINT or SIGTERM sets the stop event; the orchestrator then
abandons polling and goes straight to cleanup. A second signal exits the
process immediately with status 1.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def install_stop_handler(
    stop: asyncio.Event,
    loop: asyncio.AbstractEventLoop | None = None,
) -> None:
    """Register the shutdown signals on ``loop`` (the running loop by default)."""
    loop = loop or asyncio.get_running_loop()

    def _on_signal(signum: int) -> None:
        if stop.is_set():
            logger.error("second signal %s received, exiting", signal.Signals(signum).name)
            os._exit(1)
        logger.info("signal %s received, stopping", signal.Signals(signum).name)
        stop.set()

    for signum in SHUTDOWN_SIGNALS:
        loop.add_signal_handler(signum, _on_signal, signum)


def remove_stop_handler(loop: asyncio.AbstractEventLoop | None = None) -> None:
    loop = loop or asyncio.get_running_loop()
    for signum in SHUTDOWN_SIGNALS:
        loop.remove_signal_handler(signum)
