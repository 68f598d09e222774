"""Process-wide owner of the node index, root path, scan epoch, and export cache.

``Repo2TxtSession`` is the command surface a front end talks to. Each piece
of shared state has its own lock, and no lock is held across file I/O:
scans and exports copy what they need, work unlocked, then publish.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from .analysis import BackgroundAnalyzer, decode_text, is_binary_content
from .config import AppConfig
from .errors import NodeNotFoundError, PreconditionError, Repo2TxtError, RootNotSetError
from .events import EventSink, NullEventSink
from .export import ExportCache, ExportGenerator, ExportResult, compute_stats, copy_from_cache
from .file_tree_model import (
    ExportStats,
    FileNode,
    NodeIndex,
    ScanEpoch,
    load_selection_state,
    nodes_from_record,
    read_selection_record,
    scan_children,
    scan_root,
    write_selection_record,
)

logger = logging.getLogger(__name__)

MAX_PREVIEW_SIZE = 100 * 1024


def get_current_directory() -> Path:
    """Resolve a starting directory from the launching shell, then the cwd."""
    for env_var in ("OLDPWD", "PWD", "INIT_CWD"):
        value = os.environ.get(env_var)
        if value and Path(value).is_dir():
            logger.info("Current directory from %s: %s", env_var, value)
            return Path(value)
    return Path.cwd()


def get_parent_directory(path: Path) -> Path | None:
    """Return the parent of ``path``, or ``None`` at a filesystem root."""
    path = Path(path)
    parent = path.parent
    if parent == path:
        return None
    return parent


def read_preview_text(path: Path, size: int) -> str:
    """Read a file for display, truncating past ``MAX_PREVIEW_SIZE`` bytes."""
    try:
        if size > MAX_PREVIEW_SIZE:
            with open(path, "rb") as handle:
                data = handle.read(MAX_PREVIEW_SIZE)
            logger.info("Read %d bytes from %s (truncated)", len(data), path)
            return f"{decode_text(data)}\n\n--- TRUNCATED (File too large: {size} bytes) ---"
        data = path.read_bytes()
    except OSError as exc:
        raise Repo2TxtError(f"Failed to read file: {exc}") from exc
    if is_binary_content(data):
        return "*Binary file*"
    return decode_text(data)


class Repo2TxtSession:
    """Scan, select, analyze, and export one root directory at a time."""

    def __init__(
        self,
        events: EventSink | None = None,
        config: AppConfig | None = None,
        *,
        show_hidden: bool = True,
        skip_gitignored: bool = True,
        analyzer_factory: Callable[[ScanEpoch, NodeIndex, EventSink], BackgroundAnalyzer] | None = None,
    ) -> None:
        self.events: EventSink = events or NullEventSink()
        self.config = config or AppConfig()
        self.show_hidden = show_hidden
        self.skip_gitignored = skip_gitignored
        self.index = NodeIndex()
        self.epoch = ScanEpoch()
        self.cache = ExportCache()
        self._root_lock = threading.Lock()
        self._root: Path | None = None
        factory = analyzer_factory or BackgroundAnalyzer
        self.analyzer = factory(self.epoch, self.index, self.events)

    @property
    def root(self) -> Path | None:
        with self._root_lock:
            return self._root

    def require_root(self) -> Path:
        root = self.root
        if root is None:
            raise RootNotSetError("No root path set")
        return root

    def open_directory(self, path: Path | None = None, config: AppConfig | None = None) -> list[FileNode]:
        """Scan a root, install the index, and start background analysis.

        Returns the sorted node list. Raises ``NodeNotFoundError`` when
        ``path`` is missing or not a directory.
        """
        root = Path(path) if path is not None else Path.cwd()
        if not root.is_dir():
            logger.error("Directory does not exist or is not a directory: %s", root)
            raise NodeNotFoundError(f"Directory does not exist: {root}")
        root = root.resolve()
        config = config or self.config

        with self._root_lock:
            self._root = root
        scan_epoch = self.epoch.advance()
        logger.info("Starting scan %d of %s", scan_epoch, root)

        prior_state = load_selection_state(root)
        result = scan_root(
            root,
            config,
            prior_state,
            show_hidden=self.show_hidden,
            skip_gitignored=self.skip_gitignored,
        )
        installed, _ = self.epoch.run_if_current(
            scan_epoch,
            lambda: self.index.replace_all(result.node_map),
        )
        if not installed:
            logger.info("Scan %d superseded before install", scan_epoch)
            return result.nodes

        items = [(node.id, Path(node.path)) for node in result.nodes if not node.is_directory]
        self.analyzer.schedule(scan_epoch, items)
        logger.info("Scan %d found %d nodes; background analysis started", scan_epoch, len(result.nodes))
        return result.nodes

    def wait_for_analysis(self, timeout: float | None = None) -> bool:
        return self.analyzer.wait(timeout)

    def scan_directory(self, node_id: str, config: AppConfig | None = None) -> list[FileNode]:
        """List one level under a directory node and add entries not yet indexed."""
        root = self.require_root()
        node = self.index.get(node_id)
        if node is None:
            raise NodeNotFoundError(f"Node not found: {node_id}")
        if not node.is_directory:
            raise PreconditionError(f"Node is not a directory: {node_id}")
        scanned = scan_children(
            root,
            node.relative_path,
            config or self.config,
            show_hidden=self.show_hidden,
            skip_gitignored=self.skip_gitignored,
        )
        added = self.index.add_missing(scanned)
        logger.debug("Scanned directory %s: found %d new items", node_id, len(added))
        return added

    def update_selection(self, node_id: str, selected: bool) -> None:
        if not self.index.update_selection(node_id, selected):
            logger.debug("update_selection ignored unknown id %s", node_id)

    def toggle_expanded(self, node_id: str, expanded: bool) -> None:
        self.index.toggle_expanded(node_id, expanded)

    def select_all(self) -> None:
        self.index.select_all_files()

    def deselect_all(self) -> None:
        self.index.deselect_all()

    def get_tree(self) -> list[FileNode]:
        return self.index.nodes()

    def get_state(self) -> dict[str, FileNode]:
        return self.index.snapshot()

    def search_nodes(self, query: str) -> list[str]:
        matches = self.index.search(query)
        logger.info("Search %r found %d matches", query, len(matches))
        return matches

    def read_file(self, node_id: str) -> str:
        """Return display text for one file node."""
        node = self.index.get(node_id)
        if node is None:
            logger.error("File id %r not found in index (%d nodes)", node_id, len(self.index))
            raise NodeNotFoundError(f"File not found in index: {node_id}")
        if node.is_directory:
            raise PreconditionError("Cannot read directory as file")
        path = Path(node.path)
        size = node.size
        if size is None:
            try:
                size = int(path.stat().st_size)
            except OSError:
                size = 0
        return read_preview_text(path, size)

    def save_selection(self) -> Path:
        """Write the selection record for the open root."""
        root = self.require_root()
        return write_selection_record(root, self.index.snapshot())

    def load_selection(self) -> list[FileNode]:
        """Load nodes from the open root's selection record into the index."""
        root = self.require_root()
        payload = read_selection_record(root)
        if payload is None:
            return []
        nodes = nodes_from_record(root, payload)
        self.index.merge(nodes)
        return nodes

    def get_stats(self) -> ExportStats:
        return compute_stats(self.index)

    def generate(
        self,
        output_path: Path | None = None,
        config: AppConfig | None = None,
        *,
        persist: bool = True,
    ) -> ExportResult:
        """Export selected files, refresh the cache, and persist selection."""
        root = self.require_root()
        generator = ExportGenerator(
            self.index,
            self.cache,
            self.events,
            persist_selection=self.save_selection if persist else None,
        )
        return generator.generate(root, config or self.config, output_path)

    def copy_from_cache(self, writer: Callable[[str], object]) -> int:
        return copy_from_cache(self.cache, writer)


__all__ = [
    "MAX_PREVIEW_SIZE",
    "Repo2TxtSession",
    "get_current_directory",
    "get_parent_directory",
    "read_preview_text",
]
