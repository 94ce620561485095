"""Command-line entry points: ``kube-plex`` (transcoder shim) and ``kube-plex-ctl``."""
