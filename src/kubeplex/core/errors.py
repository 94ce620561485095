"""
Structured error types for kube-plex.

Every failure the orchestrator can hit is one of a small, closed set of
typed errors. Components raise them; the process entry point is the only
place that turns them into log lines and exit codes.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure stage
    - **Fail Fast:** Nothing in this hierarchy is retried automatically
    - **Rich Context:** Errors carry the job name, namespace and HTTP status
    - **Error Chaining:** Preserve original exceptions while adding context

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       KubePlexError                             │
        │  (category, context, cause)                                     │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                 │
        │  ConfigError       ContractError      SubmitError               │
        │  (CONFIG)          (CONTRACT)         (SUBMIT)                  │
        │                                                                 │
        │  PollError         JobFailedError     DiagnosticsError          │
        │  (POLL)            (JOB_FAILED)       (DIAGNOSTICS)             │
        │                                                                 │
        │  CleanupError                                                   │
        │  (CLEANUP)                                                      │
        └─────────────────────────────────────────────────────────────────┘

    Only ``JobFailedError`` is expected under normal operation (the
    transcoder exited non-zero). Everything else is an environment or
    platform fault and terminates the process.

Examples:
    >>> err = SubmitError("pods is forbidden").with_context(
    ...     job_name="pms-elastic-transcoder-", namespace="plex", http_status=403,
    ... )
    >>> err.to_dict()["category"]
    'SUBMIT'

Tags:
    errors, exceptions, error-hierarchy, kube-plex

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Failure stage of an invocation.

    The stage tells the operator where in the lifecycle things went
    wrong and whether a pod may have been left behind: anything from
    SUBMIT onward happened after a pod might exist.

    Attributes:
        CONFIG: Missing or malformed settings (before any cluster call)
        CONTRACT: Malformed invocation or spec (before any cluster call)
        SUBMIT: Cluster rejected pod creation
        POLL: Pod status could not be fetched
        JOB_FAILED: Pod reached the Failed phase
        DIAGNOSTICS: Logs of a failed pod could not be fetched
        CLEANUP: Pod deletion failed
        INTERNAL: Bugs, unexpected state
    """

    CONFIG = "CONFIG"
    CONTRACT = "CONTRACT"
    SUBMIT = "SUBMIT"
    POLL = "POLL"
    JOB_FAILED = "JOB_FAILED"
    DIAGNOSTICS = "DIAGNOSTICS"
    CLEANUP = "CLEANUP"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error for logging.

    Attributes:
        job_name: Pod name (or generated-name prefix before submission)
        namespace: Target namespace
        http_status: Kubernetes API status code, when the cause was an API error
        metadata: Additional key-value pairs
    """

    job_name: str | None = None
    namespace: str | None = None
    http_status: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["job_name", "namespace", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class KubePlexError(Exception):
    """
    Base exception for all kube-plex errors.

    Every instance carries:
    - **category:** ErrorCategory naming the failing stage
    - **context:** ErrorContext with structured metadata
    - **cause:** Optional underlying exception for chaining

    Subclasses set ``default_category``.

    Examples:
        >>> error = KubePlexError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> try:
        ...     raise ConnectionError("connection refused")
        ... except ConnectionError as e:
        ...     error = PollError("status fetch failed", cause=e)
        >>> error.cause
        ConnectionError('connection refused')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> KubePlexError:
        """
        Add context to this error (fluent API).

        Usage:
            raise PollError("Failed").with_context(
                job_name="pms-elastic-transcoder-x7k2p",
                namespace="plex",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# PRE-FLIGHT ERRORS (raised before any cluster call)
# =============================================================================


class ConfigError(KubePlexError):
    """Missing or malformed configuration."""

    default_category = ErrorCategory.CONFIG

    def __init__(self, message: str, *, keys: list[str] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.keys = keys or []


class ContractError(KubePlexError):
    """
    The invocation or the derived spec violates a structural contract.

    Raised for an environment entry without ``=``, a rewrite flag with no
    following value, and a spec the validator rejects.
    """

    default_category = ErrorCategory.CONTRACT

    def __init__(self, message: str, *, violations: list[str] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.violations = violations or []


# =============================================================================
# CLUSTER ERRORS
# =============================================================================


class SubmitError(KubePlexError):
    """The cluster rejected the pod (authorization, quota, malformed spec)."""

    default_category = ErrorCategory.SUBMIT


class PollError(KubePlexError):
    """Fetching the pod status failed. Transient and permanent faults are not distinguished."""

    default_category = ErrorCategory.POLL


class DiagnosticsError(KubePlexError):
    """Fetching or reading the logs of a failed pod failed."""

    default_category = ErrorCategory.DIAGNOSTICS


class CleanupError(KubePlexError):
    """Deleting the pod failed. The pod may still be running."""

    default_category = ErrorCategory.CLEANUP


class JobFailedError(KubePlexError):
    """The pod reached the Failed phase.

    ``logs`` holds the captured output of the pod.
    """

    default_category = ErrorCategory.JOB_FAILED

    def __init__(self, message: str, *, logs: str = "", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.logs = logs


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, KubePlexError):
        return error.category
    return ErrorCategory.INTERNAL


def may_leave_orphan(error: Exception) -> bool:
    """Whether a pod may still exist on the cluster after this error."""
    return categorize_error(error) is ErrorCategory.CLEANUP


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "KubePlexError",
    "ConfigError",
    "ContractError",
    "SubmitError",
    "PollError",
    "DiagnosticsError",
    "CleanupError",
    "JobFailedError",
    "categorize_error",
    "may_leave_orphan",
]
