"""Kubernetes runtime adapter — runs the transcoder as a bare pod.

Translates a ``ContainerJobSpec`` into a ``V1Pod`` and drives it through
the ``CoreV1Api``. The kubernetes client is synchronous; every call runs
in a worker thread via ``asyncio.to_thread`` so the event loop stays free
to notice a stop signal while a request is in flight.

API surface consumed (all scoped to one namespace):

.. code-block:: text

    submit   → create_namespaced_pod
    status   → read_namespaced_pod
    logs     → read_namespaced_pod_log
    cleanup  → delete_namespaced_pod

Credentials are ambient: the in-cluster service account when running
inside the media server pod, otherwise the local kubeconfig.

Example:
    >>> adapter = KubernetesPodAdapter.from_environment()
    >>> handle = await adapter.submit(spec)
    >>> status = await adapter.status(handle)
    >>> await adapter.cleanup(handle)

Tags:
    kube-plex, execution, runtimes, kubernetes, pod

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from kubeplex.core.errors import (
    CleanupError,
    ConfigError,
    DiagnosticsError,
    KubePlexError,
    PollError,
    SubmitError,
)
from kubeplex.execution.runtimes._base import BaseRuntimeAdapter
from kubeplex.execution.runtimes._types import (
    ContainerJobSpec,
    JobHandle,
    JobStatus,
    Phase,
)

logger = logging.getLogger(__name__)


def load_cluster_config(kubeconfig: str | None = None) -> None:
    """Load ambient cluster credentials into the kubernetes client.

    An explicit kubeconfig path wins; otherwise the in-cluster service
    account is tried first, then the default kubeconfig.

    Raises:
        ConfigError: If no usable configuration is found.
    """
    try:
        if kubeconfig:
            config.load_kube_config(config_file=kubeconfig)
            logger.debug("Loaded kubeconfig from %s", kubeconfig)
            return
        try:
            config.load_incluster_config()
            logger.debug("Loaded in-cluster configuration")
        except ConfigException:
            config.load_kube_config()
            logger.debug("Loaded default kubeconfig")
    except (ConfigException, OSError) as exc:
        raise ConfigError(f"Error building kubeconfig: {exc}", cause=exc) from exc


def to_pod_manifest(spec: ContainerJobSpec) -> client.V1Pod:
    """Render a spec as a ``V1Pod`` ready for ``create_namespaced_pod``."""
    container = client.V1Container(
        name=spec.container_name,
        image=spec.image,
        command=list(spec.command),
        working_dir=spec.working_dir,
        env=[client.V1EnvVar(name=e.name, value=e.value) for e in spec.env],
        resources=client.V1ResourceRequirements(limits=spec.resources.limits() or None),
        volume_mounts=[
            client.V1VolumeMount(
                name=m.name,
                mount_path=m.mount_path,
                read_only=m.read_only or None,
            )
            for m in spec.volume_mounts
        ],
    )
    return client.V1Pod(
        api_version="v1",
        kind="Pod",
        metadata=client.V1ObjectMeta(
            generate_name=spec.generate_name,
            namespace=spec.namespace,
            labels=dict(spec.labels) or None,
        ),
        spec=client.V1PodSpec(
            node_selector=dict(spec.node_selector) or None,
            restart_policy=spec.restart_policy,
            security_context=client.V1PodSecurityContext(
                run_as_user=spec.run_as_user,
                run_as_group=spec.run_as_group,
            ),
            containers=[container],
            volumes=[
                client.V1Volume(
                    name=v.name,
                    persistent_volume_claim=client.V1PersistentVolumeClaimVolumeSource(
                        claim_name=v.claim_name,
                    ),
                )
                for v in spec.volumes
            ],
        ),
    )


def _api_error(
    error_cls: type[KubePlexError],
    action: str,
    exc: ApiException,
    *,
    job_name: str,
    namespace: str,
) -> KubePlexError:
    return error_cls(
        f"Error {action} pod: {exc.status} {exc.reason}",
        cause=exc,
    ).with_context(job_name=job_name, namespace=namespace, http_status=exc.status)


class KubernetesPodAdapter(BaseRuntimeAdapter):
    """Runs ContainerJobSpecs as Kubernetes pods through ``CoreV1Api``."""

    def __init__(self, core_v1: client.CoreV1Api | None = None) -> None:
        self._core_v1 = core_v1 or client.CoreV1Api()

    @classmethod
    def from_environment(cls, kubeconfig: str | None = None) -> KubernetesPodAdapter:
        """Load ambient credentials and build an adapter on top of them."""
        load_cluster_config(kubeconfig)
        return cls(client.CoreV1Api())

    @property
    def runtime_name(self) -> str:
        return "kubernetes"

    async def _do_submit(self, spec: ContainerJobSpec) -> JobHandle:
        try:
            pod = await asyncio.to_thread(
                self._core_v1.create_namespaced_pod,
                namespace=spec.namespace,
                body=to_pod_manifest(spec),
            )
        except ApiException as exc:
            raise _api_error(
                SubmitError, "creating", exc,
                job_name=spec.generate_name, namespace=spec.namespace,
            ) from exc
        return JobHandle(
            name=pod.metadata.name,
            namespace=pod.metadata.namespace or spec.namespace,
        )

    async def _do_status(self, handle: JobHandle) -> JobStatus:
        try:
            pod = await asyncio.to_thread(
                self._core_v1.read_namespaced_pod,
                name=handle.name,
                namespace=handle.namespace,
            )
        except ApiException as exc:
            raise _api_error(
                PollError, "reading", exc,
                job_name=handle.name, namespace=handle.namespace,
            ) from exc
        status = pod.status or client.V1PodStatus()
        return JobStatus(
            phase=Phase.parse(status.phase),
            message=status.message,
            reason=status.reason,
            node=pod.spec.node_name if pod.spec else None,
        )

    async def _do_logs(self, handle: JobHandle) -> AsyncIterator[str]:
        try:
            text = await asyncio.to_thread(
                self._core_v1.read_namespaced_pod_log,
                name=handle.name,
                namespace=handle.namespace,
            )
        except ApiException as exc:
            raise _api_error(
                DiagnosticsError, "reading logs of", exc,
                job_name=handle.name, namespace=handle.namespace,
            ) from exc
        for line in (text or "").splitlines(keepends=True):
            yield line

    async def _do_cleanup(self, handle: JobHandle) -> None:
        try:
            await asyncio.to_thread(
                self._core_v1.delete_namespaced_pod,
                name=handle.name,
                namespace=handle.namespace,
            )
        except ApiException as exc:
            raise _api_error(
                CleanupError, "deleting", exc,
                job_name=handle.name, namespace=handle.namespace,
            ) from exc
