"""Snapshot of the local transcoder invocation.

The media server starts this program exactly as it would start the real
transcoder. Everything the remote pod needs to behave the same way is
captured once, at process start, into an immutable ``Invocation``.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kubeplex.core.config import TranscoderSettings


@dataclass(frozen=True)
class Invocation:
    """Immutable snapshot of the local execution context.

    Attributes:
        cwd: Working directory of the caller.
        uid: Numeric user id the pod runs as.
        gid: Numeric group id the pod runs as.
        env: ``KEY=VALUE`` entries in process order. Duplicates pass through.
        argv: Full argument vector, argv[0] included.
    """

    cwd: str
    uid: int
    gid: int
    env: tuple[str, ...]
    argv: tuple[str, ...]

    @classmethod
    def capture(
        cls,
        settings: TranscoderSettings,
        *,
        argv: list[str] | None = None,
        environ: dict[str, str] | None = None,
        cwd: str | None = None,
    ) -> Invocation:
        """Snapshot the current process.

        The numeric identity comes from settings so that file ownership on
        the shared volumes matches the media server, not whoever happens
        to run the shim.
        """
        environ = os.environ if environ is None else environ
        return cls(
            cwd=cwd if cwd is not None else os.getcwd(),
            uid=settings.uid,
            gid=settings.gid,
            env=tuple(f"{key}={value}" for key, value in environ.items()),
            argv=tuple(sys.argv if argv is None else argv),
        )
