"""Allow ``python -m kubeplex`` as an alias of the ``kube-plex`` executable."""

from kubeplex.cli.transcoder import main

if __name__ == "__main__":
    raise SystemExit(main())
