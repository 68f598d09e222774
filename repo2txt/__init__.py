"""Public package surface for repo2txt.

Exports ``main`` for programmatic CLI invocation and ``Repo2TxtSession`` for
embedding the scan/select/export pipeline in another front end.
"""

from __future__ import annotations


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)


def __getattr__(name: str):
    if name == "Repo2TxtSession":
        from .session import Repo2TxtSession

        return Repo2TxtSession
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["main", "Repo2TxtSession"]
