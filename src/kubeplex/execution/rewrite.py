"""Invocation rewriting for the remote execution context.

Inside the cluster the transcoder cannot reach the media server on its
loopback address, and its output is only visible through pod logs. Two
families of flags are therefore rewritten before the argument vector
becomes the pod command:

.. code-block:: text

    -progressurl / -manifest_name / -segment_list
        http://127.0.0.1:32400/...  →  <PMS_INTERNAL_ADDRESS>/...
    -loglevel / -loglevel_plex
        <anything>                  →  debug

A rule rewrites the value that follows its flag in place; the length of
the vector never changes. The environment goes through an explicit
pass-through step.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING

from kubeplex.core.errors import ContractError

if TYPE_CHECKING:
    from kubeplex.core.config import TranscoderSettings
    from kubeplex.execution.invocation import Invocation

RewriteRule = Callable[[str], str]

LOOPBACK_AUTHORITY = "http://127.0.0.1:32400"
DEBUG_LEVEL = "debug"

CALLBACK_FLAGS = ("-progressurl", "-manifest_name", "-segment_list")
VERBOSITY_FLAGS = ("-loglevel", "-loglevel_plex")


def replace_authority(internal_address: str) -> RewriteRule:
    """Rule replacing the first loopback authority with ``internal_address``."""

    def rule(value: str) -> str:
        return value.replace(LOOPBACK_AUTHORITY, internal_address, 1)

    return rule


def force_debug(_: str) -> str:
    return DEBUG_LEVEL


def default_rules(internal_address: str) -> dict[str, RewriteRule]:
    """The rule table keyed by flag token."""
    rules: dict[str, RewriteRule] = {}
    callback = replace_authority(internal_address)
    for flag in CALLBACK_FLAGS:
        rules[flag] = callback
    for flag in VERBOSITY_FLAGS:
        rules[flag] = force_debug
    return rules


def rewrite_args(argv: Sequence[str], rules: Mapping[str, RewriteRule]) -> list[str]:
    """Apply ``rules`` in one left-to-right pass and return the new vector.

    Each position is matched after earlier rewrites, so a value produced
    by a rule is itself checked against the table.

    Raises:
        ContractError: If a recognized flag is the last element.
    """
    out = list(argv)
    for i in range(len(out)):
        rule = rules.get(out[i])
        if rule is None:
            continue
        if i + 1 >= len(out):
            raise ContractError(
                f"flag {out[i]!r} at position {i} has no value to rewrite",
                violations=[out[i]],
            )
        out[i + 1] = rule(out[i + 1])
    return out


def rewrite_env(env: Iterable[str]) -> list[str]:
    """Rewrite environment entries for the pod.

    No entry needs changing today; every entry is forwarded verbatim.
    """
    return list(env)


def rewrite_invocation(invocation: Invocation, settings: TranscoderSettings) -> Invocation:
    """Return a copy of ``invocation`` with argv and env rewritten."""
    return dataclasses.replace(
        invocation,
        env=tuple(rewrite_env(invocation.env)),
        argv=tuple(rewrite_args(invocation.argv, default_rules(settings.pms_internal_address))),
    )
