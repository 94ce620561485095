"""Runtime adapters for the remote transcoder.

Architecture:

    .. code-block:: text

        kubeplex.execution.runtimes
        ├── __init__.py      ← Public API (this file)
        ├── _types.py        ← RuntimeAdapter protocol + all types
        ├── _base.py         ← BaseRuntimeAdapter + StubRuntimeAdapter
        ├── validator.py     ← SpecValidator (pre-submit gate)
        ├── k8s.py           ← KubernetesPodAdapter (CoreV1Api)
        └── mock_adapters.py ← SequenceAdapter, FailingAdapter (tests)

    RuntimeAdapter operates on ContainerJobSpec and hands back a JobHandle
    that identifies the pod for every later call.

Tags:
    kube-plex, execution, runtimes, adapter-protocol

Doc-Types:
    api-reference
"""

from kubeplex.execution.runtimes._base import (
    BaseRuntimeAdapter,
    StubRuntimeAdapter,
)
from kubeplex.execution.runtimes._types import (
    ContainerJobSpec,
    EnvVar,
    JobHandle,
    JobStatus,
    PersistentVolume,
    Phase,
    ResourceRequirements,
    RuntimeAdapter,
    VolumeMount,
    redact_spec,
)
from kubeplex.execution.runtimes.mock_adapters import (
    FailingAdapter,
    SequenceAdapter,
)
from kubeplex.execution.runtimes.validator import SpecValidator

__all__ = [
    # Types & Protocol
    "ContainerJobSpec",
    "EnvVar",
    "JobHandle",
    "JobStatus",
    "PersistentVolume",
    "Phase",
    "ResourceRequirements",
    "RuntimeAdapter",
    "VolumeMount",
    # Utilities
    "redact_spec",
    # Base classes
    "BaseRuntimeAdapter",
    "StubRuntimeAdapter",
    "SpecValidator",
    # Mock adapters (testing)
    "FailingAdapter",
    "SequenceAdapter",
]
