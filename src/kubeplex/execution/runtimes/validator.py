"""Pre-submit validation for ContainerJobSpec.

``SpecValidator`` catches specs the API server would reject (or that would
schedule a pod doing the wrong thing) before any cluster call is made, so
a bad invocation fails as a contract error and never as a half-created
pod.

Example:
    >>> validator = SpecValidator()
    >>> validator.validate(spec)
    []
    >>> validator.validate_or_raise(spec)  # raises ContractError on violations

Tags:
    kube-plex, execution, runtimes, validation, pre-submit

Doc-Types:
    api-reference
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from kubeplex.core.errors import ContractError

if TYPE_CHECKING:
    from kubeplex.execution.runtimes._types import ContainerJobSpec

logger = logging.getLogger(__name__)

# Same grammar the API server uses for resource.Quantity.
_QUANTITY = re.compile(r"^([+-]?[0-9.]+)([eEinumkKMGTP]*[-+]?[0-9]*)$")
_DNS_LABEL = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
_GENERATE_NAME = re.compile(r"^[a-z0-9]([-a-z0-9]*)?$")

# The API server appends 5 random characters to generateName.
_MAX_GENERATE_NAME = 63 - 5


class SpecValidator:
    """Validates a ContainerJobSpec before submission.

    All violations are collected (not fail-fast) so the operator sees
    every problem at once. Stateless.
    """

    def validate(self, spec: ContainerJobSpec) -> list[str]:
        """Return violation messages. Empty list = spec is valid."""
        violations: list[str] = []
        violations.extend(self._check_identity(spec))
        violations.extend(self._check_container(spec))
        violations.extend(self._check_volumes(spec))
        return violations

    def validate_or_raise(self, spec: ContainerJobSpec) -> None:
        """Validate, raising ``ContractError`` with all violations joined by ``'; '``."""
        violations = self.validate(spec)
        if violations:
            msg = "; ".join(violations)
            logger.warning("Spec validation failed for '%s': %s", spec.generate_name, msg)
            raise ContractError(
                f"Invalid pod spec: {msg}",
                violations=violations,
            ).with_context(job_name=spec.generate_name, namespace=spec.namespace)

    # ------------------------------------------------------------------
    # Internal checks
    # ------------------------------------------------------------------

    def _check_identity(self, spec: ContainerJobSpec) -> list[str]:
        violations: list[str] = []
        if not _GENERATE_NAME.match(spec.generate_name) or len(spec.generate_name) > _MAX_GENERATE_NAME:
            violations.append(f"invalid generate_name {spec.generate_name!r}")
        if not _DNS_LABEL.match(spec.namespace):
            violations.append(f"invalid namespace {spec.namespace!r}")
        for label, value in (("run_as_user", spec.run_as_user), ("run_as_group", spec.run_as_group)):
            if value is not None and value < 0:
                violations.append(f"{label} must be non-negative, got {value}")
        return violations

    def _check_container(self, spec: ContainerJobSpec) -> list[str]:
        violations: list[str] = []
        if not spec.image.strip():
            violations.append("image is empty")
        if not spec.command:
            violations.append("command is empty")
        for resource, quantity in spec.resources.limits().items():
            if not _QUANTITY.match(quantity):
                violations.append(f"invalid {resource} limit quantity {quantity!r}")
        for env in spec.env:
            if not env.name:
                violations.append(f"environment variable with empty name (value {env.value!r})")
        return violations

    def _check_volumes(self, spec: ContainerJobSpec) -> list[str]:
        violations: list[str] = []
        declared = {v.name for v in spec.volumes}
        for mount in spec.volume_mounts:
            if mount.name not in declared:
                violations.append(
                    f"mount {mount.mount_path!r} references undeclared volume {mount.name!r}"
                )
        for volume in spec.volumes:
            if not volume.claim_name:
                violations.append(f"volume {volume.name!r} has no claim name")
        return violations
