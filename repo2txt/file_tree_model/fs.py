"""Filesystem walks that build the structural node index.

The full-root scan never stats or reads file contents: it records structure
and merges persisted selection state, leaving ``size``/``token_count`` for
background analysis. Subtree scans list one level and do measure sizes.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ..config import AppConfig
from ..gitignore import get_gitignore_matcher, load_ignore_rules_matcher
from .policy import IgnorePolicy
from .types import FileNode, node_sort_key

logger = logging.getLogger(__name__)

SelectionState = Mapping[str, tuple[bool, bool]]


class PathMatcher(Protocol):
    def is_ignored(self, path: Path, is_directory: bool = False) -> bool: ...


@dataclass(frozen=True)
class DirectoryChild:
    """One directory entry that survived ignore filtering."""

    name: str
    path: Path
    is_dir: bool


@dataclass(frozen=True)
class ScanResult:
    """Sorted node list plus the equivalent id-keyed map."""

    nodes: list[FileNode]
    node_map: dict[str, FileNode]


def safe_file_size(path: Path, is_dir: bool) -> int | None:
    """Return file size for files, otherwise ``None`` or on stat failure."""
    if is_dir:
        return None
    try:
        return int(path.stat().st_size)
    except OSError:
        return None


def relative_id(root: Path, path: Path) -> str:
    """Return the root-relative POSIX path used as a node id."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def parent_id_for(node_id: str) -> str | None:
    """Return the id of the containing directory, or ``None`` at depth 1."""
    parent, sep, _name = node_id.rpartition("/")
    if not sep or not parent:
        return None
    return parent


def collect_matchers(root: Path, skip_gitignored: bool, include_rules_file: bool) -> list[PathMatcher]:
    """Return the ignore matchers active for a scan rooted at ``root``."""
    matchers: list[PathMatcher] = []
    if skip_gitignored:
        git_matcher = get_gitignore_matcher(root)
        if git_matcher is not None:
            matchers.append(git_matcher)
    if include_rules_file:
        rules_matcher = load_ignore_rules_matcher(root)
        if rules_matcher is not None:
            matchers.append(rules_matcher)
    return matchers


def list_directory_children(
    directory: Path,
    policy: IgnorePolicy,
    show_hidden: bool = True,
    matchers: Iterable[PathMatcher] = (),
) -> tuple[list[DirectoryChild], Exception | None]:
    """List visible children that pass ignore policy and matchers.

    Returns ``(children, scan_error)``; ``scan_error`` is set when the
    directory itself cannot be listed. Symlinks are never followed.
    """
    active_matchers = tuple(matchers)
    children: list[DirectoryChild] = []
    try:
        with os.scandir(directory) as entries:
            for child in entries:
                name = child.name
                if not show_hidden and name.startswith("."):
                    continue
                try:
                    is_dir = child.is_dir(follow_symlinks=False)
                except OSError:
                    is_dir = False
                if policy.skips(name, is_dir):
                    logger.debug("Skipping %s by ignore policy", child.path)
                    continue
                child_path = Path(child.path)
                if any(matcher.is_ignored(child_path, is_dir) for matcher in active_matchers):
                    continue
                children.append(DirectoryChild(name=name, path=child_path, is_dir=is_dir))
    except OSError as exc:
        return [], exc

    children.sort(key=lambda item: (not item.is_dir, item.name))
    return children, None


def scan_root(
    root: Path,
    config: AppConfig,
    prior_state: SelectionState | None = None,
    *,
    show_hidden: bool = True,
    skip_gitignored: bool = True,
) -> ScanResult:
    """Walk ``root`` recursively and build nodes with merged selection state.

    The root itself is never part of the result. Entries found in
    ``prior_state`` adopt its ``(selected, expanded)`` pair; everything else
    defaults to selected and collapsed so new files are not silently dropped
    from the next export.
    """
    root = root.resolve()
    policy = IgnorePolicy.from_config(config)
    matchers = collect_matchers(root, skip_gitignored, include_rules_file=True)
    state = prior_state or {}

    nodes: list[FileNode] = []
    node_map: dict[str, FileNode] = {}
    pending: list[Path] = [root]
    while pending:
        directory = pending.pop()
        children, scan_error = list_directory_children(directory, policy, show_hidden, matchers)
        if scan_error is not None:
            logger.warning("Cannot scan %s: %s", directory, scan_error)
            continue
        for child in children:
            node_id = relative_id(root, child.path)
            selected, expanded = state.get(node_id, (True, False))
            node = FileNode(
                id=node_id,
                parent_id=parent_id_for(node_id),
                name=child.name,
                path=str(child.path),
                relative_path=node_id,
                is_directory=child.is_dir,
                selected=selected,
                expanded=expanded,
            )
            nodes.append(node)
            node_map[node_id] = node
            if child.is_dir:
                pending.append(child.path)

    nodes.sort(key=node_sort_key)
    return ScanResult(nodes=nodes, node_map=node_map)


def scan_children(
    root: Path,
    directory_id: str,
    config: AppConfig,
    *,
    show_hidden: bool = True,
    skip_gitignored: bool = True,
) -> list[FileNode]:
    """List one level below ``directory_id`` as fresh, measured nodes.

    Uses the same policy as ``scan_root`` but not the root-local rules file.
    New nodes are selected and collapsed; directories report size ``0``.
    """
    root = root.resolve()
    directory = root / directory_id
    policy = IgnorePolicy.from_config(config)
    matchers = collect_matchers(root, skip_gitignored, include_rules_file=False)

    children, scan_error = list_directory_children(directory, policy, show_hidden, matchers)
    if scan_error is not None:
        logger.warning("Cannot scan %s: %s", directory, scan_error)
        return []

    nodes: list[FileNode] = []
    for child in children:
        node_id = relative_id(root, child.path)
        size = 0 if child.is_dir else safe_file_size(child.path, child.is_dir)
        if size is None:
            continue
        nodes.append(
            FileNode(
                id=node_id,
                parent_id=directory_id,
                name=child.name,
                path=str(child.path),
                relative_path=node_id,
                is_directory=child.is_dir,
                size=size,
            )
        )
    return nodes


__all__ = [
    "DirectoryChild",
    "ScanResult",
    "SelectionState",
    "collect_matchers",
    "list_directory_children",
    "parent_id_for",
    "relative_id",
    "safe_file_size",
    "scan_children",
    "scan_root",
]
