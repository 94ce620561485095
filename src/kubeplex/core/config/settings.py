"""
Process settings for kube-plex.

Manifesto:
    One validated settings object, built once at process start and
    passed by reference, replaces reading the environment from inside
    the components. The spec builder takes a ``TranscoderSettings`` and
    never touches ``os.environ``, which keeps it unit-testable.

The variable names of the deployment (``DATA_PVC``, ``PMS_IMAGE``,
``PLEX_UID``...) are kept as-is because the Helm chart sets them on the
media server container; knobs that only this package reads use the
``KUBEPLEX_`` prefix.

Tags:
    kube-plex, configuration, settings, pydantic, validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kubeplex.core.errors import ConfigError


class TranscoderSettings(BaseSettings):
    """Configuration of the remote transcoder.

    Required: the three claim names, namespace, image, internal address
    and the numeric identity. ``cpu_limit`` may be unset; the spec
    builder applies the default quantity.
    """

    model_config = SettingsConfigDict(
        env_prefix="KUBEPLEX_",
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    # ── Volumes ──────────────────────────────────────────────────
    data_pvc: str = Field(validation_alias="DATA_PVC", min_length=1)
    config_pvc: str = Field(validation_alias="CONFIG_PVC", min_length=1)
    transcode_pvc: str = Field(validation_alias="TRANSCODE_PVC", min_length=1)

    # ── Placement ────────────────────────────────────────────────
    namespace: str = Field(validation_alias="KUBE_NAMESPACE", min_length=1)
    pms_image: str = Field(validation_alias="PMS_IMAGE", min_length=1)
    pms_internal_address: str = Field(validation_alias="PMS_INTERNAL_ADDRESS", min_length=1)

    # ── Resources ────────────────────────────────────────────────
    cpu_limit: str | None = Field(default=None, validation_alias="LIMIT_CPU")

    # ── Identity ─────────────────────────────────────────────────
    uid: int = Field(validation_alias="PLEX_UID", ge=0)
    gid: int = Field(validation_alias="PLEX_GID", ge=0)

    # ── Shim behaviour (KUBEPLEX_*) ──────────────────────────────
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    log_level: str = Field(default="INFO")
    log_format: Literal["console", "json"] = Field(default="console")
    kubeconfig: str | None = Field(default=None)

    @field_validator("cpu_limit", mode="before")
    @classmethod
    def _blank_cpu_limit_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value!r}")
        return level

    def env_names(self) -> dict[str, str]:
        """Map of field name to the environment variable it is read from."""
        names: dict[str, str] = {}
        for name, info in type(self).model_fields.items():
            alias = info.validation_alias
            names[name] = alias if isinstance(alias, str) else f"KUBEPLEX_{name.upper()}"
        return names


def load_settings(**overrides: object) -> TranscoderSettings:
    """Build settings from the environment.

    Raises:
        ConfigError: listing every missing or malformed variable.
    """
    try:
        return TranscoderSettings(**overrides)
    except ValidationError as exc:
        problems: list[str] = []
        keys: list[str] = []
        for error in exc.errors():
            key = str(error["loc"][0]) if error["loc"] else "?"
            if not key.isupper():
                key = f"KUBEPLEX_{key.upper()}"
            keys.append(key)
            problems.append(f"{key}: {error['msg']}")
        raise ConfigError(
            "Invalid configuration: " + "; ".join(problems),
            keys=keys,
            cause=exc,
        ) from exc
