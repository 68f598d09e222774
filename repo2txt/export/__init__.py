"""Export pipeline: tree header, per-file formatting, stats, and the export cache."""

from __future__ import annotations

from .cache import CLIPBOARD_LIMIT_BYTES, ExportCache, copy_from_cache
from .generator import EXPORT_CONCURRENCY, PREVIEW_LIMIT_BYTES, ExportGenerator, ExportResult, process_file
from .language import resolve_language
from .stats import compute_stats
from .tree_render import build_tree_structure

__all__ = [
    "CLIPBOARD_LIMIT_BYTES",
    "EXPORT_CONCURRENCY",
    "PREVIEW_LIMIT_BYTES",
    "ExportCache",
    "ExportGenerator",
    "ExportResult",
    "build_tree_structure",
    "compute_stats",
    "copy_from_cache",
    "process_file",
    "resolve_language",
]
