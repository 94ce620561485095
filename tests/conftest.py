"""
Shared pytest fixtures for kube-plex tests.

Settings are built by field name so no test depends on the process
environment; ``clean_env`` removes every variable the settings read for
tests that exercise environment loading.
"""

from __future__ import annotations

import pytest

from kubeplex.core.config import TranscoderSettings
from kubeplex.execution.invocation import Invocation

SETTINGS_ENV = (
    "DATA_PVC",
    "CONFIG_PVC",
    "TRANSCODE_PVC",
    "KUBE_NAMESPACE",
    "PMS_IMAGE",
    "PMS_INTERNAL_ADDRESS",
    "LIMIT_CPU",
    "PLEX_UID",
    "PLEX_GID",
    "KUBEPLEX_POLL_INTERVAL_SECONDS",
    "KUBEPLEX_LOG_LEVEL",
    "KUBEPLEX_LOG_FORMAT",
    "KUBEPLEX_KUBECONFIG",
)

VALID_ENV = {
    "DATA_PVC": "media-data",
    "CONFIG_PVC": "plex-config",
    "TRANSCODE_PVC": "plex-transcode",
    "KUBE_NAMESPACE": "plex",
    "PMS_IMAGE": "plexinc/pms-docker:1.40.0",
    "PMS_INTERNAL_ADDRESS": "http://plex.plex.svc:32400",
    "PLEX_UID": "1000",
    "PLEX_GID": "1000",
}


@pytest.fixture()
def clean_env(monkeypatch):
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture()
def valid_env(clean_env):
    for name, value in VALID_ENV.items():
        clean_env.setenv(name, value)
    return clean_env


@pytest.fixture()
def settings(clean_env) -> TranscoderSettings:
    return TranscoderSettings(
        data_pvc="media-data",
        config_pvc="plex-config",
        transcode_pvc="plex-transcode",
        namespace="plex",
        pms_image="plexinc/pms-docker:1.40.0",
        pms_internal_address="http://plex.plex.svc:32400",
        uid=1000,
        gid=1000,
    )


@pytest.fixture()
def invocation() -> Invocation:
    return Invocation(
        cwd="/transcode/session-1",
        uid=1000,
        gid=1000,
        env=("HOME=/config", "PLEX_MEDIA_SERVER_INFO_VENDOR=Docker"),
        argv=(
            "/usr/lib/plexmediaserver/Plex Transcoder",
            "-loglevel", "error",
            "-i", "/data/movies/film.mkv",
            "-progressurl", "http://127.0.0.1:32400/video/:/transcode/session/abc/progress",
            "-f", "dash",
            "/transcode/session-1/dash",
        ),
    )
