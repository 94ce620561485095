"""Tests for kubeplex.core.logging — structlog configuration."""

from __future__ import annotations

import io
import json

import structlog

from kubeplex.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


def _configure(stream: io.StringIO, **kwargs) -> None:
    structlog.reset_defaults()
    configure_logging(stream=stream, **kwargs)


class TestConfigureLogging:
    def test_json_output_carries_service_and_level(self):
        stream = io.StringIO()
        _configure(stream, json_format=True)
        get_logger("kubeplex.test").info("pod_started", job_name="pod-1")

        record = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert record["event"] == "pod_started"
        assert record["job_name"] == "pod-1"
        assert record["level"] == "info"
        assert record["service"] == "kube-plex"
        assert record["logger"] == "kubeplex.test"

    def test_level_filters_debug(self):
        stream = io.StringIO()
        _configure(stream, json_format=True, level="INFO")
        get_logger("kubeplex.test").debug("noisy")
        assert "noisy" not in stream.getvalue()

    def test_non_tty_defaults_to_json(self):
        stream = io.StringIO()
        _configure(stream)
        get_logger("kubeplex.test").warning("plain")
        assert json.loads(stream.getvalue().strip().splitlines()[-1])["event"] == "plain"

    def test_console_format(self):
        stream = io.StringIO()
        _configure(stream, json_format=False)
        get_logger("kubeplex.test").info("pod_started")
        assert "pod_started" in stream.getvalue()


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_context_bound_and_removed(self):
        stream = io.StringIO()
        _configure(stream, json_format=True)
        log = get_logger("kubeplex.test")

        with LogContext(job_name="pod-1", namespace="plex"):
            log.info("inside")
        log.info("outside")

        inside, outside = (json.loads(line) for line in stream.getvalue().strip().splitlines()[-2:])
        assert inside["job_name"] == "pod-1"
        assert inside["namespace"] == "plex"
        assert "job_name" not in outside

    async def _scoped(self):
        async with LogContext(job_name="pod-2"):
            return dict(structlog.contextvars.get_contextvars())

    def test_async_context(self):
        import asyncio

        seen = asyncio.run(self._scoped())
        assert seen == {"job_name": "pod-2"}
        assert structlog.contextvars.get_contextvars() == {}

    def test_bind_context(self):
        bind_context(run="r1")
        assert structlog.contextvars.get_contextvars() == {"run": "r1"}
