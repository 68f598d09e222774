"""Exception taxonomy for scan, selection, and export operations.

Per-file I/O problems are never raised; they degrade the single entry.
These exceptions are reserved for operations with no useful partial result.
"""

from __future__ import annotations

from typing import Any


class Repo2TxtError(Exception):
    """Base exception for repo2txt."""

    def __init__(self, message: str, details: Any | None = None) -> None:
        super().__init__(message)
        self.details = details


class NodeNotFoundError(Repo2TxtError):
    """Raised for an unknown node id or a missing root directory."""


class RootNotSetError(Repo2TxtError):
    """Raised when an operation needs a root path and none is open."""


class PreconditionError(Repo2TxtError):
    """Raised when a directory is given where a file is required, or vice versa."""


class SelectionRecordError(Repo2TxtError):
    """Raised when a persisted selection record cannot be read or parsed."""


class ResourceLimitError(Repo2TxtError):
    """Raised when content is absent or too large for a bounded sink."""


class ExportWriteError(Repo2TxtError):
    """Raised when the export destination cannot be created or written."""


__all__ = [
    "Repo2TxtError",
    "NodeNotFoundError",
    "RootNotSetError",
    "PreconditionError",
    "SelectionRecordError",
    "ResourceLimitError",
    "ExportWriteError",
]
