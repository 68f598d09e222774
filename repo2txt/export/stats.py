"""Aggregate ``{files, size, tokens}`` over export-eligible files."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from ..analysis.tokens import tokens_for_bytes
from ..file_tree_model import ExportStats, FileNode, NodeIndex, eligible_files

logger = logging.getLogger(__name__)

STATS_CONCURRENCY = 50


def _measure_uncached(node: FileNode) -> tuple[int, int]:
    """Return ``(size, tokens)`` for a node whose token count is still unknown."""
    try:
        data = Path(node.path).read_bytes()
    except OSError as exc:
        logger.debug("Cannot read %s for stats: %s", node.path, exc)
        return node.size or 0, 0
    size = node.size if node.size is not None else len(data)
    return size, tokens_for_bytes(data)


def compute_stats(index: NodeIndex, concurrency: int = STATS_CONCURRENCY) -> ExportStats:
    """Sum known token counts and re-tokenize the rest without touching the index.

    Results may mix cached and freshly computed counts while background
    analysis is still running.
    """
    files = eligible_files(index.snapshot())
    cached = [node for node in files if node.token_count is not None]
    needs_calc = [node for node in files if node.token_count is None]

    size = sum(node.size or 0 for node in cached)
    tokens = sum(node.token_count or 0 for node in cached)
    if needs_calc:
        logger.debug("Computing tokens for %d files without cached counts", len(needs_calc))
        with ThreadPoolExecutor(max_workers=max(1, concurrency), thread_name_prefix="repo2txt-stats") as pool:
            for file_size, file_tokens in pool.map(_measure_uncached, needs_calc):
                size += file_size
                tokens += file_tokens

    return ExportStats(files=len(files), size=size, tokens=tokens)


__all__ = [
    "STATS_CONCURRENCY",
    "compute_stats",
]
