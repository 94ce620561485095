"""
Root Typer application for the ``kube-plex-ctl`` operator CLI.

The transcoder shim itself (``kube-plex``) never parses arguments; this
CLI is for operators inspecting what the shim would do.
"""

from __future__ import annotations

import json
import os

import typer
from typer import Typer

from kubeplex.cli.config import app as config_app
from kubeplex.cli.utils import console, fail

app = Typer(
    name="kube-plex-ctl",
    help="kube-plex — inspect the configuration and pod specs of the remote transcoder.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("kube-plex")
        except PackageNotFoundError:
            from kubeplex import __version__ as v
        typer.echo(f"kube-plex {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """kube-plex operator CLI."""


@app.command(
    "render",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def render(
    args: list[str] = typer.Argument(
        ..., help="Transcoder argument vector, argv[0] included. Put it after '--'.",
    ),
    env: list[str] = typer.Option(
        [], "--env", help="KEY=VALUE entry for the pod environment (repeatable).",
    ),
    cwd: str | None = typer.Option(None, "--cwd", help="Working directory. Default: current."),
    format: str = typer.Option("yaml", "--format", help="Output format: yaml, json"),
) -> None:
    """Dry run: print the pod the shim would create for ARGS. Nothing is submitted.

    Example: kube-plex-ctl render --env HOME=/config -- "Plex Transcoder" -loglevel error
    """
    import yaml
    from kubernetes import client

    from kubeplex.core.config import load_settings
    from kubeplex.core.errors import KubePlexError
    from kubeplex.execution.builder import build_job_spec
    from kubeplex.execution.invocation import Invocation
    from kubeplex.execution.rewrite import rewrite_invocation
    from kubeplex.execution.runtimes.k8s import to_pod_manifest
    from kubeplex.execution.runtimes.validator import SpecValidator

    try:
        settings = load_settings()
        invocation = Invocation(
            cwd=cwd or os.getcwd(),
            uid=settings.uid,
            gid=settings.gid,
            env=tuple(env),
            argv=tuple(args),
        )
        spec = build_job_spec(rewrite_invocation(invocation, settings), settings)
        SpecValidator().validate_or_raise(spec)
    except KubePlexError as e:
        raise fail(e) from e

    manifest = client.ApiClient().sanitize_for_serialization(to_pod_manifest(spec))
    if format == "json":
        console.print_json(json.dumps(manifest))
    else:
        typer.echo(yaml.safe_dump(manifest, sort_keys=False))


app.add_typer(config_app, name="config", help="Configuration inspection.")
