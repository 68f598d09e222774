"""Lock-guarded node index, scan epoch counter, and selection edits.

Every method takes the index lock only for the in-memory access itself.
Callers copy what they need out of the index and do file I/O afterwards.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from typing import TypeVar

from .types import FileNode, FileUpdate, node_sort_key

T = TypeVar("T")


def is_export_eligible(node: FileNode, nodes: Mapping[str, FileNode]) -> bool:
    """Return whether ``node`` is a selected file whose direct parent is selected.

    Only the immediate parent is consulted; a missing parent does not exclude
    the file.
    """
    if node.is_directory or not node.selected:
        return False
    if node.parent_id:
        parent = nodes.get(node.parent_id)
        if parent is not None and not parent.selected:
            return False
    return True


def eligible_files(nodes: Mapping[str, FileNode]) -> list[FileNode]:
    return [node for node in nodes.values() if is_export_eligible(node, nodes)]


class ScanEpoch:
    """Monotonic scan generation used for cooperative cancellation.

    Two locks are involved. The counter lock only guards reads and bumps of
    the generation, so ``is_current`` never waits on a publisher. The
    re-entrant publish lock serializes ``run_if_current`` actions against
    ``advance``: another thread's ``advance`` waits for a running action to
    finish, while an action may itself call ``advance`` (for example an event
    sink that reopens a directory).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._publish_lock = threading.RLock()
        self._current = 0

    @property
    def current(self) -> int:
        with self._lock:
            return self._current

    def advance(self) -> int:
        """Start a new generation and return it."""
        with self._publish_lock:
            with self._lock:
                self._current += 1
                return self._current

    def is_current(self, epoch: int) -> bool:
        with self._lock:
            return self._current == epoch

    def run_if_current(self, epoch: int, action: Callable[[], T]) -> tuple[bool, T | None]:
        """Run ``action`` only while ``epoch`` is still current.

        No other thread can advance the epoch while ``action`` runs, so
        nothing it publishes is observed after a newer scan has started.
        """
        with self._publish_lock:
            if not self.is_current(epoch):
                return False, None
            return True, action()


class NodeIndex:
    """Path-keyed map of ``FileNode`` objects guarded by one lock.

    Reads hand out copies so callers never observe later in-place edits.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._nodes: dict[str, FileNode] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        with self._lock:
            return node_id in self._nodes

    def replace_all(self, nodes: Mapping[str, FileNode]) -> None:
        """Install ``nodes`` as the whole index, dropping prior contents."""
        fresh = {node_id: replace(node) for node_id, node in nodes.items()}
        with self._lock:
            self._nodes = fresh

    def clear(self) -> None:
        with self._lock:
            self._nodes = {}

    def get(self, node_id: str) -> FileNode | None:
        with self._lock:
            node = self._nodes.get(node_id)
            return replace(node) if node is not None else None

    def snapshot(self) -> dict[str, FileNode]:
        """Return a consistent deep copy of the index."""
        with self._lock:
            return {node_id: replace(node) for node_id, node in self._nodes.items()}

    def nodes(self) -> list[FileNode]:
        """Return copies of all nodes in display order."""
        with self._lock:
            out = [replace(node) for node in self._nodes.values()]
        out.sort(key=node_sort_key)
        return out

    def token_counts(self, node_ids: Iterable[str]) -> dict[str, int | None]:
        with self._lock:
            return {
                node_id: self._nodes[node_id].token_count
                for node_id in node_ids
                if node_id in self._nodes
            }

    def add_missing(self, nodes: Iterable[FileNode]) -> list[FileNode]:
        """Insert nodes whose ids are not present yet; return those inserted."""
        added: list[FileNode] = []
        with self._lock:
            for node in nodes:
                if node.id in self._nodes:
                    continue
                self._nodes[node.id] = replace(node)
                added.append(replace(node))
        return added

    def merge(self, nodes: Iterable[FileNode]) -> None:
        """Insert or overwrite nodes by id."""
        with self._lock:
            for node in nodes:
                self._nodes[node.id] = replace(node)

    def apply_updates(self, updates: Iterable[FileUpdate]) -> int:
        """Store measured size/token values; unknown ids are ignored."""
        applied = 0
        with self._lock:
            for update in updates:
                node = self._nodes.get(update.id)
                if node is None:
                    continue
                node.size = update.size
                node.token_count = update.token_count
                applied += 1
        return applied

    def update_selection(self, node_id: str, selected: bool) -> bool:
        """Set ``selected`` on a node and, for directories, every descendant.

        Descendants are found by id prefix (``<id>/``), which holds because
        ids are separator-delimited relative paths. Returns ``False`` for an
        unknown id.
        """
        with self._lock:
            node = self._nodes.get(node_id)
            if node is None:
                return False
            node.selected = selected
            if node.is_directory:
                prefix = f"{node_id}/"
                for key, child in self._nodes.items():
                    if key.startswith(prefix):
                        child.selected = selected
            return True

    def toggle_expanded(self, node_id: str, expanded: bool) -> bool:
        """Set ``expanded`` on one node only; ``False`` for an unknown id."""
        with self._lock:
            node = self._nodes.get(node_id)
            if node is None:
                return False
            node.expanded = expanded
            return True

    def select_all_files(self) -> None:
        with self._lock:
            for node in self._nodes.values():
                if not node.is_directory:
                    node.selected = True

    def deselect_all(self) -> None:
        with self._lock:
            for node in self._nodes.values():
                node.selected = False

    def search(self, query: str) -> list[str]:
        """Return ids whose names contain ``query`` case-insensitively."""
        folded_query = query.casefold()
        with self._lock:
            matches = [node_id for node_id, node in self._nodes.items() if folded_query in node.name.casefold()]
        matches.sort()
        return matches


__all__ = [
    "NodeIndex",
    "ScanEpoch",
    "eligible_files",
    "is_export_eligible",
]
