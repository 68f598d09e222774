"""Persisted selection record stored as ``<root>/.r2x``.

The record is a tree of ``{name, path, is_directory, selected, expanded,
children?}`` objects mirroring the index. ``children`` is omitted (not an
empty list) for leaves. Size and token data are never persisted.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path

from ..errors import SelectionRecordError
from .types import FileNode, node_sort_key

logger = logging.getLogger(__name__)

RECORD_FILENAME = ".r2x"
RECORD_VERSION = "1.0"


def record_path(root: Path) -> Path:
    return Path(root).resolve() / RECORD_FILENAME


def _record_nodes(payload: object) -> list[dict[str, object]]:
    """Validate the top-level shape and return its ``nodes`` list."""
    if not isinstance(payload, dict):
        raise SelectionRecordError("Selection record must be a JSON object")
    nodes = payload.get("nodes")
    if not isinstance(nodes, list):
        raise SelectionRecordError("Selection record has no 'nodes' list")
    return nodes


def _checked_entry(raw: object) -> tuple[dict[str, object], str, bool, bool, list[object]]:
    if not isinstance(raw, dict):
        raise SelectionRecordError("Selection record entry must be an object", details=raw)
    path = raw.get("path")
    selected = raw.get("selected")
    expanded = raw.get("expanded")
    if not isinstance(path, str) or not isinstance(selected, bool) or not isinstance(expanded, bool):
        raise SelectionRecordError("Selection record entry needs path/selected/expanded", details=raw)
    children = raw.get("children")
    if children is None:
        children = []
    if not isinstance(children, list):
        raise SelectionRecordError("Selection record 'children' must be a list", details=raw)
    return raw, path, selected, expanded, children


def flatten_record(nodes: list[object]) -> dict[str, tuple[bool, bool]]:
    """Flatten a record tree into ``relative path -> (selected, expanded)``."""
    flat: dict[str, tuple[bool, bool]] = {}
    stack = list(reversed(nodes))
    while stack:
        _entry, path, selected, expanded, children = _checked_entry(stack.pop())
        flat[path] = (selected, expanded)
        stack.extend(reversed(children))
    return flat


def read_selection_record(root: Path) -> dict[str, object] | None:
    """Read and decode the record for ``root``.

    Returns ``None`` when no record exists and raises ``SelectionRecordError``
    when it cannot be read or is not a valid record.
    """
    path = record_path(root)
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise SelectionRecordError(f"Failed to read selection record {path}: {exc}") from exc
    _record_nodes(payload)
    return payload


def load_selection_state(root: Path) -> dict[str, tuple[bool, bool]] | None:
    """Return the flattened prior state for ``root``, or ``None``.

    Any read/parse failure degrades to "no prior state" so a broken record
    never blocks a scan.
    """
    try:
        payload = read_selection_record(root)
        if payload is None:
            logger.debug("No selection record under %s", root)
            return None
        state = flatten_record(_record_nodes(payload))
    except SelectionRecordError as exc:
        logger.warning("Ignoring selection record: %s", exc)
        return None
    logger.info("Loaded selection record with %d entries", len(state))
    return state


def build_selection_record(nodes: Mapping[str, FileNode]) -> dict[str, object]:
    """Build the record tree for ``nodes`` with siblings in display order."""
    children_of: dict[str | None, list[FileNode]] = {}
    for node in nodes.values():
        parent = node.parent_id or None
        if parent is not None and parent not in nodes:
            parent = None
        children_of.setdefault(parent, []).append(node)
    for siblings in children_of.values():
        siblings.sort(key=node_sort_key)

    def to_entry(node: FileNode) -> dict[str, object]:
        entry: dict[str, object] = {
            "name": node.name,
            "path": node.relative_path,
            "is_directory": node.is_directory,
            "selected": node.selected,
            "expanded": node.expanded,
        }
        children = children_of.get(node.id, [])
        if children:
            entry["children"] = [to_entry(child) for child in children]
        return entry

    return {
        "version": RECORD_VERSION,
        "nodes": [to_entry(node) for node in children_of.get(None, [])],
    }


def write_selection_record(root: Path, nodes: Mapping[str, FileNode]) -> Path:
    """Serialize ``nodes`` to ``<root>/.r2x`` and return the written path."""
    path = record_path(root)
    record = build_selection_record(nodes)
    try:
        path.write_text(json.dumps(record, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        raise SelectionRecordError(f"Failed to write selection record {path}: {exc}") from exc
    logger.info("Saved selection record to %s", path)
    return path


def clear_selection_record(root: Path) -> bool:
    """Delete the record for ``root``; return whether one existed."""
    path = record_path(root)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise SelectionRecordError(f"Failed to delete selection record {path}: {exc}") from exc
    logger.info("Deleted selection record %s", path)
    return True


def nodes_from_record(root: Path, payload: dict[str, object]) -> list[FileNode]:
    """Rebuild index nodes from a record tree (sizes zero, tokens unknown)."""
    root = Path(root).resolve()
    out: list[FileNode] = []

    def visit(raw: object, parent_id: str | None) -> None:
        entry, path, selected, expanded, children = _checked_entry(raw)
        name = entry.get("name")
        out.append(
            FileNode(
                id=path,
                parent_id=parent_id,
                name=name if isinstance(name, str) else path.rpartition("/")[2],
                path=str(root / path),
                relative_path=path,
                is_directory=bool(entry.get("is_directory", False)),
                size=0,
                selected=selected,
                expanded=expanded,
            )
        )
        for child in children:
            visit(child, path)

    for entry in _record_nodes(payload):
        visit(entry, None)
    return out


__all__ = [
    "RECORD_FILENAME",
    "RECORD_VERSION",
    "build_selection_record",
    "clear_selection_record",
    "flatten_record",
    "load_selection_state",
    "nodes_from_record",
    "read_selection_record",
    "record_path",
    "write_selection_record",
]
