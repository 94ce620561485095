"""Job spec builder — turns a rewritten invocation into a pod description.

Policy baked into every spec:

.. code-block:: text

    restart policy   Never (a pod that exits is terminal)
    cpu limit        settings.cpu_limit, or 100m when unset
    memory limit     none (transcodes are bursty; avoid throttling/OOM)
    node selector    kubernetes.io/arch=amd64
    security context runAsUser/runAsGroup = caller's numeric identity
    volumes          data (rw), config (ro), transcode (rw) mounted twice:
                     /transcode and /tmp share one volume

Example:
    >>> spec = build_job_spec(rewrite_invocation(invocation, settings), settings)
    >>> spec.resources.cpu
    '100m'
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from kubeplex.core.errors import ContractError
from kubeplex.execution.runtimes._types import (
    ContainerJobSpec,
    EnvVar,
    PersistentVolume,
    ResourceRequirements,
    VolumeMount,
)

if TYPE_CHECKING:
    from kubeplex.core.config import TranscoderSettings
    from kubeplex.execution.invocation import Invocation

GENERATE_NAME = "pms-elastic-transcoder-"
CONTAINER_NAME = "plex"
DEFAULT_LIMIT_CPU = "100m"
NODE_ARCH = "amd64"

DATA_VOLUME = "data"
CONFIG_VOLUME = "config"
TRANSCODE_VOLUME = "transcode"

LABELS = {
    "app.kubernetes.io/name": "kube-plex",
    "app.kubernetes.io/component": "transcoder",
}


def to_env_vars(env: Iterable[str]) -> list[EnvVar]:
    """Split each ``KEY=VALUE`` entry on the first ``=``.

    Raises:
        ContractError: For an entry without ``=``.
    """
    out: list[EnvVar] = []
    for entry in env:
        name, sep, value = entry.partition("=")
        if not sep:
            raise ContractError(
                f"malformed environment entry {entry!r}: expected KEY=VALUE",
                violations=[entry],
            )
        out.append(EnvVar(name=name, value=value))
    return out


def cpu_limit(settings: TranscoderSettings) -> str:
    return settings.cpu_limit or DEFAULT_LIMIT_CPU


def build_volumes(settings: TranscoderSettings) -> tuple[tuple[PersistentVolume, ...], tuple[VolumeMount, ...]]:
    volumes = (
        PersistentVolume(name=DATA_VOLUME, claim_name=settings.data_pvc),
        PersistentVolume(name=CONFIG_VOLUME, claim_name=settings.config_pvc),
        PersistentVolume(name=TRANSCODE_VOLUME, claim_name=settings.transcode_pvc),
    )
    mounts = (
        VolumeMount(name=DATA_VOLUME, mount_path="/data"),
        VolumeMount(name=CONFIG_VOLUME, mount_path="/config", read_only=True),
        VolumeMount(name=TRANSCODE_VOLUME, mount_path="/transcode"),
        VolumeMount(name=TRANSCODE_VOLUME, mount_path="/tmp"),
    )
    return volumes, mounts


def build_job_spec(invocation: Invocation, settings: TranscoderSettings) -> ContainerJobSpec:
    """Produce the pod description for an already rewritten invocation."""
    volumes, mounts = build_volumes(settings)
    return ContainerJobSpec(
        generate_name=GENERATE_NAME,
        namespace=settings.namespace,
        container_name=CONTAINER_NAME,
        image=settings.pms_image,
        command=tuple(invocation.argv),
        working_dir=invocation.cwd,
        env=tuple(to_env_vars(invocation.env)),
        run_as_user=invocation.uid,
        run_as_group=invocation.gid,
        resources=ResourceRequirements(cpu=cpu_limit(settings)),
        volumes=volumes,
        volume_mounts=mounts,
        node_selector={"kubernetes.io/arch": NODE_ARCH},
        labels=dict(LABELS),
        restart_policy="Never",
    )
