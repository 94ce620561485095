"""Core primitives shared by the kube-plex components: errors, logging, config."""
