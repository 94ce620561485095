"""
kube-plex - run the media server's transcoder as an ephemeral Kubernetes pod.

The ``kube-plex`` executable is installed in place of the transcoder. Each
invocation is relayed to a freshly created pod, watched until it finishes,
and deleted afterwards; the caller sees the same exit status it would have
seen locally.
"""

__version__ = "0.1.0"
