"""Configuration for kube-plex.

Exports:
    TranscoderSettings: pydantic-settings model of the process environment
    load_settings: build settings, raising ``ConfigError`` on bad input
"""

from kubeplex.core.config.settings import TranscoderSettings, load_settings

__all__ = ["TranscoderSettings", "load_settings"]
