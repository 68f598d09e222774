"""Domain model for the scanned file tree.

This package contains the non-I/O-heavy tree primitives:
- node datatypes and display ordering
- ignore policy predicates
- structural directory scans with persisted-state merge
- the persisted selection record
- the lock-guarded node index and scan epoch
"""

from __future__ import annotations

from .fs import ScanResult, list_directory_children, parent_id_for, relative_id, scan_children, scan_root
from .index import NodeIndex, ScanEpoch, eligible_files, is_export_eligible
from .policy import IgnorePolicy, extension_of, is_private
from .selection_store import (
    RECORD_FILENAME,
    build_selection_record,
    clear_selection_record,
    flatten_record,
    load_selection_state,
    nodes_from_record,
    read_selection_record,
    write_selection_record,
)
from .types import ExportStats, FileNode, FileUpdate, node_sort_key

__all__ = [
    "ExportStats",
    "FileNode",
    "FileUpdate",
    "node_sort_key",
    "IgnorePolicy",
    "extension_of",
    "is_private",
    "ScanResult",
    "list_directory_children",
    "parent_id_for",
    "relative_id",
    "scan_children",
    "scan_root",
    "NodeIndex",
    "ScanEpoch",
    "eligible_files",
    "is_export_eligible",
    "RECORD_FILENAME",
    "build_selection_record",
    "clear_selection_record",
    "flatten_record",
    "load_selection_state",
    "nodes_from_record",
    "read_selection_record",
    "write_selection_record",
]
