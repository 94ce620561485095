"""
The ``kube-plex`` executable — a drop-in replacement for the transcoder.

The media server execs this program with the transcoder's own arguments
and environment. Nothing here parses ``argv``: it is relayed as the pod
command after rewriting.

This module is the single error boundary of the process. Every component
raises typed errors; they are logged and turned into an exit status here
and nowhere else.

Exit status:
    0  the pod succeeded
    1  the pod failed, the run was cancelled, or a fatal error occurred
"""

from __future__ import annotations

import asyncio
import sys

from kubeplex.core.config import TranscoderSettings, load_settings
from kubeplex.core.errors import ConfigError, KubePlexError, may_leave_orphan
from kubeplex.core.logging import configure_logging, get_logger
from kubeplex.execution.engine import JobEngine
from kubeplex.execution.invocation import Invocation
from kubeplex.execution.runtimes.k8s import KubernetesPodAdapter
from kubeplex.execution.signals import install_stop_handler, remove_stop_handler

logger = get_logger(__name__)


def report_pod_logs(logs: str) -> None:
    """Write the output of a failed pod to stderr, verbatim."""
    sys.stderr.write(f"pod logs:\n{logs}")
    if logs and not logs.endswith("\n"):
        sys.stderr.write("\n")
    sys.stderr.flush()


async def run_invocation(settings: TranscoderSettings, invocation: Invocation) -> int:
    """Run one invocation on the cluster and return the exit status."""
    adapter = KubernetesPodAdapter.from_environment(settings.kubeconfig)
    engine = JobEngine(adapter, settings, on_pod_logs=report_pod_logs)

    stop = asyncio.Event()
    install_stop_handler(stop)
    try:
        result = await engine.run(invocation, stop)
    finally:
        remove_stop_handler()

    logger.info("run_finished", outcome=result.outcome.value, job_name=result.handle.name)
    return result.exit_code


def main(argv: list[str] | None = None) -> int:
    try:
        settings = load_settings()
    except ConfigError as exc:
        configure_logging()
        logger.error("invalid_configuration", **exc.to_dict())
        return 1

    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
    )

    try:
        invocation = Invocation.capture(settings, argv=argv)
        return asyncio.run(run_invocation(settings, invocation))
    except KubePlexError as exc:
        logger.error("fatal_error", orphan_possible=may_leave_orphan(exc), **exc.to_dict())
        return 1


if __name__ == "__main__":
    sys.exit(main())
