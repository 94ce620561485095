"""Remote execution of a transcoder invocation.

::

    Invocation (what the media server asked for)
      │
      ▼
    rewrite_invocation ─ loopback URLs → internal address, loglevel → debug
      │
      ▼
    build_job_spec ───── ContainerJobSpec (image, volumes, identity, limits)
      │
      ▼
    JobEngine.run ────── submit → watch ⇄ stop → logs on failure → cleanup
"""

from kubeplex.execution.builder import build_job_spec, to_env_vars
from kubeplex.execution.engine import JobEngine, RunOutcome, RunResult
from kubeplex.execution.invocation import Invocation
from kubeplex.execution.rewrite import default_rules, rewrite_args, rewrite_env, rewrite_invocation

__all__ = [
    "Invocation",
    "JobEngine",
    "RunOutcome",
    "RunResult",
    "build_job_spec",
    "default_rules",
    "rewrite_args",
    "rewrite_env",
    "rewrite_invocation",
    "to_env_vars",
]
