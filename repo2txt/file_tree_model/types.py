"""Domain datatypes for indexed filesystem nodes and analysis results."""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass
class FileNode:
    """One indexed filesystem entry keyed by its root-relative path.

    ``size`` and ``token_count`` stay ``None`` until measured, so "not yet
    known" is distinguishable from an empty file.
    """

    id: str
    parent_id: str | None
    name: str
    path: str
    relative_path: str
    is_directory: bool
    size: int | None = None
    token_count: int | None = None
    selected: bool = True
    expanded: bool = False

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class FileUpdate:
    """Measured size/token values for one file, produced by background analysis."""

    id: str
    size: int
    token_count: int

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class ExportStats:
    """Aggregate ``{files, size, tokens}`` over export-eligible files."""

    files: int = 0
    size: int = 0
    tokens: int = 0

    def exceeds(self, token_limit: int) -> bool:
        """Return whether the token total is past the warning threshold."""
        return self.tokens > token_limit

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def node_sort_key(node: FileNode) -> tuple[bool, str]:
    """Directories before files, then name ascending."""
    return (not node.is_directory, node.name)


__all__ = [
    "FileNode",
    "FileUpdate",
    "ExportStats",
    "node_sort_key",
]
