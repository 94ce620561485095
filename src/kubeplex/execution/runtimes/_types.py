"""Runtime adapter types and protocol for the remote transcoder.

This module defines the abstractions shared by the spec builder, the
runtime adapters and the orchestrator:

- ContainerJobSpec: Full spec for the transcoder pod (image, command, env, volumes)
- JobHandle: Identity of a submitted pod (name + namespace)
- Phase / JobStatus: Observed lifecycle state from the cluster
- RuntimeAdapter: Protocol for submitting, polling, reading and deleting pods

Design Notes:
    ``ContainerJobSpec`` is platform-neutral; the Kubernetes adapter
    translates it to a ``V1Pod``. Tests drive the orchestrator with the
    in-memory adapters in ``_base`` and ``mock_adapters``.

Architecture:

    .. code-block:: text

        ┌─────────────────────────────────────────────────────────────┐
        │                    _types.py Module Map                     │
        ├─────────────────────────────────────────────────────────────┤
        │                                                             │
        │  ┌─────────────────┐    ┌──────────────────────────────┐    │
        │  │  Phase          │    │     ContainerJobSpec         │    │
        │  │  (Enum: 5)      │    │     generate_name, image     │    │
        │  └────────┬────────┘    │     command, env, resources  │    │
        │           │             │     volumes, volume_mounts   │    │
        │  ┌────────▼────────┐    │     run_as_user/group        │    │
        │  │    JobStatus    │    │     + to_dict()              │    │
        │  └─────────────────┘    └──────────┬───────────────────┘    │
        │                                    │                        │
        │  ┌─────────────────┐    ┌──────────▼───────────────────┐    │
        │  │   JobHandle     │◄───│  RuntimeAdapter (Protocol)   │    │
        │  │  name/namespace │    │  submit/status/logs/cleanup  │    │
        │  └─────────────────┘    └──────────────────────────────┘    │
        └─────────────────────────────────────────────────────────────┘

Tags:
    kube-plex, execution, runtimes, types, protocol

Doc-Types:
    api-reference
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Protocol, runtime_checkable


# ---------------------------------------------------------------------------
# Lifecycle state
# ---------------------------------------------------------------------------

class Phase(str, Enum):
    """Pod phase as reported by the cluster.

    Pending, Running and Unknown are non-terminal; Failed and Succeeded
    are terminal.
    """

    PENDING = "Pending"
    RUNNING = "Running"
    UNKNOWN = "Unknown"
    FAILED = "Failed"
    SUCCEEDED = "Succeeded"

    @property
    def is_terminal(self) -> bool:
        return self in (Phase.FAILED, Phase.SUCCEEDED)

    @classmethod
    def parse(cls, value: str | None) -> Phase:
        """Map a raw phase string to a Phase. Anything unrecognized is UNKNOWN."""
        for phase in cls:
            if phase.value == value:
                return phase
        return cls.UNKNOWN


@dataclass(frozen=True)
class JobStatus:
    """Observed status of a pod."""

    phase: Phase
    message: str | None = None
    reason: str | None = None
    node: str | None = None

    @property
    def is_terminal(self) -> bool:
        """Whether the pod has reached a final phase."""
        return self.phase.is_terminal

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"phase": self.phase.value}
        if self.message:
            d["message"] = self.message
        if self.reason:
            d["reason"] = self.reason
        if self.node:
            d["node"] = self.node
        return d


@dataclass(frozen=True)
class JobHandle:
    """Identity of a submitted pod.

    The only identity used for polling, log fetching and deletion. Owned
    by a single orchestrator run and never reused.
    """

    name: str
    namespace: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


# ---------------------------------------------------------------------------
# Spec components
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EnvVar:
    """A single container environment variable."""

    name: str
    value: str


@dataclass(frozen=True)
class ResourceRequirements:
    """Container resource limits. ``memory`` stays unset for transcodes."""

    cpu: str | None = None             # K8s quantity: "100m", "2"
    memory: str | None = None

    def limits(self) -> dict[str, str]:
        """Non-None limits keyed by resource name."""
        return {k: v for k, v in {
            "cpu": self.cpu,
            "memory": self.memory,
        }.items() if v is not None}


@dataclass(frozen=True)
class PersistentVolume:
    """A pod volume backed by an existing persistent volume claim."""

    name: str
    claim_name: str


@dataclass(frozen=True)
class VolumeMount:
    """Mount of a named pod volume into the container."""

    name: str
    mount_path: str
    read_only: bool = False


# ---------------------------------------------------------------------------
# ContainerJobSpec — the main spec
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ContainerJobSpec:
    """Declarative description of the transcoder pod.

    Write-once: produced by ``build_job_spec`` and only read afterwards.

    .. code-block:: text

        ContainerJobSpec
        ├── Identity: generate_name, namespace, labels
        ├── What: container_name, image, command, working_dir
        ├── Environment: env
        ├── Identity on disk: run_as_user, run_as_group
        ├── Resources: cpu limit only
        ├── Storage: volumes (PVCs), volume_mounts
        └── Scheduling: node_selector, restart_policy
    """

    generate_name: str
    namespace: str
    image: str
    command: tuple[str, ...]
    container_name: str = "plex"
    working_dir: str | None = None
    env: tuple[EnvVar, ...] = ()
    run_as_user: int | None = None
    run_as_group: int | None = None
    resources: ResourceRequirements = field(default_factory=ResourceRequirements)
    volumes: tuple[PersistentVolume, ...] = ()
    volume_mounts: tuple[VolumeMount, ...] = ()
    node_selector: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    restart_policy: str = "Never"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict (for logging and dry runs)."""
        return {
            "generate_name": self.generate_name,
            "namespace": self.namespace,
            "container_name": self.container_name,
            "image": self.image,
            "command": list(self.command),
            "working_dir": self.working_dir,
            "env": [{"name": e.name, "value": e.value} for e in self.env],
            "run_as_user": self.run_as_user,
            "run_as_group": self.run_as_group,
            "resources": {"limits": self.resources.limits()},
            "volumes": [
                {"name": v.name, "claim_name": v.claim_name} for v in self.volumes
            ],
            "volume_mounts": [
                {"name": m.name, "mount_path": m.mount_path, "read_only": m.read_only}
                for m in self.volume_mounts
            ],
            "node_selector": dict(self.node_selector),
            "labels": dict(self.labels),
            "restart_policy": self.restart_policy,
        }


_REDACTED = "***REDACTED***"
_SECRET_NAME = re.compile(r"TOKEN|SECRET|PASSWORD|PASSWD|KEY|CREDENTIAL", re.IGNORECASE)
_SECRET_QUERY = re.compile(r"(X-Plex-Token=)[^&\s]+", re.IGNORECASE)


def redact_spec(spec: ContainerJobSpec) -> dict[str, Any]:
    """Serialize a spec with secret-looking values masked.

    Environment values whose names look like credentials are replaced,
    and Plex tokens embedded in command URLs are masked.
    """
    data = spec.to_dict()
    data["env"] = [
        {"name": e["name"], "value": _REDACTED if _SECRET_NAME.search(e["name"]) else e["value"]}
        for e in data["env"]
    ]
    data["command"] = [_SECRET_QUERY.sub(rf"\g<1>{_REDACTED}", arg) for arg in data["command"]]
    return data


# ---------------------------------------------------------------------------
# RuntimeAdapter — the core protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class RuntimeAdapter(Protocol):
    """Protocol for pod runtime adapters.

    Lifecycle:
        submit → status (polling) → logs (on failure) → cleanup

    .. code-block:: text

        RuntimeAdapter Protocol — 4 Methods
        ┌────────────────────────────────────────────────────────┐
        │  submit(spec) → JobHandle       Create the pod         │
        │  status(handle) → JobStatus     Poll current phase     │
        │  logs(handle) → lines           Read captured output   │
        │  cleanup(handle) → None         Delete the pod         │
        └────────────────────────────────────────────────────────┘
    """

    @property
    def runtime_name(self) -> str:
        """Unique name for this runtime (e.g. 'kubernetes', 'stub')."""
        ...

    async def submit(self, spec: ContainerJobSpec) -> JobHandle:
        """Create the pod and return its handle.

        Raises:
            SubmitError: If the cluster rejects the pod.
        """
        ...

    async def status(self, handle: JobHandle) -> JobStatus:
        """Get the current phase.

        Raises:
            PollError: If the status cannot be fetched.
        """
        ...

    def logs(self, handle: JobHandle) -> AsyncIterator[str]:
        """Yield the captured output lines of the pod.

        Raises:
            DiagnosticsError: If the log stream cannot be read.
        """
        ...

    async def cleanup(self, handle: JobHandle) -> None:
        """Delete the pod.

        Raises:
            CleanupError: If deletion fails.
        """
        ...
