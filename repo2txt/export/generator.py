"""Export of selected files into one formatted document.

Files are read concurrently through a bounded thread pool, formatted with
the configured template, then sorted by relative path before anything is
written. Pool width therefore changes latency only, never the output.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from ..config import AppConfig
from ..errors import ExportWriteError
from ..events import (
    GENERATION_PROGRESS,
    STAGE_COMPLETED,
    STAGE_PREPARING,
    STAGE_PROCESSING,
    STAGE_WRITING,
    EventSink,
    NullEventSink,
    ProgressEvent,
)
from ..analysis.tokens import BINARY_PLACEHOLDER, decode_text, is_binary_content
from ..file_tree_model import ExportStats, FileNode, NodeIndex, eligible_files
from .cache import ExportCache
from .language import resolve_language
from .tree_render import build_tree_structure

logger = logging.getLogger(__name__)

EXPORT_CONCURRENCY = 50
PREVIEW_LIMIT_BYTES = 50 * 1024
PROGRESS_EVERY = 5
READ_ERROR_PLACEHOLDER = "*Error reading file*"


@dataclass(frozen=True)
class ProcessedChunk:
    """One formatted file block plus the size it contributes to stats."""

    relative_path: str
    formatted_content: str
    original_size: int


@dataclass(frozen=True)
class ExportResult:
    preview_content: str
    is_truncated: bool
    stats: ExportStats

    def to_dict(self) -> dict[str, object]:
        return {
            "preview_content": self.preview_content,
            "is_truncated": self.is_truncated,
            "stats": self.stats.to_dict(),
        }


def render_header(tree_structure: str) -> str:
    return f"# Collected Files\n\n## File Structure\n\n```\n{tree_structure}\n```\n\n---\n\n"


def render_template(template: str, relative_path: str, language: str, content: str) -> str:
    """Fill ``{{path}}``/``{{language}}`` first so file text is never re-expanded."""
    formatted = template.replace("{{path}}", relative_path).replace("{{language}}", language)
    return formatted.replace("{{content}}", content)


def process_file(node: FileNode, config: AppConfig) -> ProcessedChunk:
    """Read and format one file, degrading any failure to a placeholder block."""
    relative_path = node.relative_path
    path = Path(node.path)
    try:
        file_size = int(path.stat().st_size)
    except OSError as exc:
        logger.warning("Failed to get metadata for %s: %s", path, exc)
        return ProcessedChunk(
            relative_path=relative_path,
            formatted_content=f"## {relative_path}\n\n*Error: Could not read file*\n\n---\n\n",
            original_size=0,
        )

    if file_size > config.max_file_size:
        logger.warning(
            "File %s exceeds max_file_size (%d > %d), skipping",
            path,
            file_size,
            config.max_file_size,
        )
        return ProcessedChunk(
            relative_path=relative_path,
            formatted_content=(
                f"## {relative_path}\n\n*File too large ({file_size} bytes, "
                f"limit: {config.max_file_size} bytes) - skipped*\n\n---\n\n"
            ),
            original_size=file_size,
        )

    original_size = file_size
    try:
        data = path.read_bytes()
    except OSError as exc:
        logger.warning("Failed to read %s: %s", path, exc)
        content = READ_ERROR_PLACEHOLDER
        original_size = 0
    else:
        if is_binary_content(data):
            logger.warning("File %s detected as binary during generation", path)
            content = BINARY_PLACEHOLDER
        else:
            content = decode_text(data)

    return ProcessedChunk(
        relative_path=relative_path,
        formatted_content=render_template(
            config.output_template,
            relative_path,
            resolve_language(relative_path),
            content,
        ),
        original_size=original_size,
    )


class _PreviewBuffer:
    """Byte-capped prefix of the export; sets ``truncated`` once bytes are dropped."""

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._parts: list[bytes] = []
        self._size = 0
        self.truncated = False

    def append(self, data: bytes) -> None:
        remaining = self._limit - self._size
        if remaining <= 0:
            if data:
                self.truncated = True
            return
        if len(data) > remaining:
            data = data[:remaining]
            self.truncated = True
        self._parts.append(data)
        self._size += len(data)

    def text(self) -> str:
        # A cut inside a multi-byte character leaves a partial tail; drop it.
        return b"".join(self._parts).decode("utf-8", errors="ignore")


class ExportGenerator:
    """Produce exports from the node index and publish them to the cache."""

    def __init__(
        self,
        index: NodeIndex,
        cache: ExportCache,
        events: EventSink | None = None,
        *,
        persist_selection: Callable[[], object] | None = None,
        concurrency: int = EXPORT_CONCURRENCY,
        preview_limit: int = PREVIEW_LIMIT_BYTES,
    ) -> None:
        self._index = index
        self._cache = cache
        self._events = events or NullEventSink()
        self._persist_selection = persist_selection
        self._concurrency = max(1, concurrency)
        self._preview_limit = preview_limit

    def _progress(self, current: int, total: int, stage: str) -> None:
        self._events.emit(GENERATION_PROGRESS, ProgressEvent(current=current, total=total, stage=stage))

    def _process_all(self, files: list[FileNode], config: AppConfig) -> list[ProcessedChunk]:
        total = len(files)
        done = 0
        done_lock = threading.Lock()

        def run(node: FileNode) -> ProcessedChunk:
            nonlocal done
            chunk = process_file(node, config)
            with done_lock:
                done += 1
                current = done
            if current % PROGRESS_EVERY == 0 or current == total:
                self._progress(current, total, STAGE_PROCESSING)
            return chunk

        with ThreadPoolExecutor(max_workers=self._concurrency, thread_name_prefix="repo2txt-export") as pool:
            chunks = list(pool.map(run, files))
        chunks.sort(key=lambda chunk: chunk.relative_path)
        return chunks

    def generate(
        self,
        root: Path,
        config: AppConfig | None = None,
        output_path: Path | None = None,
    ) -> ExportResult:
        """Export every eligible file; optionally stream to ``output_path``.

        Relative ``output_path`` values resolve against ``root``. Sink
        failures raise ``ExportWriteError``; per-file failures only produce
        placeholder blocks.
        """
        started = time.monotonic()
        config = config or AppConfig()
        snapshot = self._index.snapshot()
        files = eligible_files(snapshot)
        tree_structure = build_tree_structure(snapshot)
        total = len(files)
        logger.info("Starting generation for %d files", total)
        self._progress(0, total, STAGE_PREPARING)

        sink: BinaryIO | None = None
        if output_path is not None:
            destination = Path(output_path)
            if not destination.is_absolute():
                destination = Path(root) / destination
            logger.info("Creating output file at %s", destination)
            try:
                sink = open(destination, "wb")
            except OSError as exc:
                raise ExportWriteError(f"Failed to create file at {destination}: {exc}") from exc

        try:
            chunks = self._process_all(files, config)
            self._progress(total, total, STAGE_WRITING)

            full_parts: list[str] = []
            preview = _PreviewBuffer(self._preview_limit)
            for text in [render_header(tree_structure), *(chunk.formatted_content for chunk in chunks)]:
                data = text.encode("utf-8")
                if sink is not None:
                    try:
                        sink.write(data)
                    except OSError as exc:
                        raise ExportWriteError(f"Failed to write export: {exc}") from exc
                full_parts.append(text)
                preview.append(data)

            if sink is not None:
                try:
                    sink.flush()
                except OSError as exc:
                    raise ExportWriteError(f"Failed to flush export: {exc}") from exc
        finally:
            if sink is not None:
                sink.close()

        known_tokens = self._index.token_counts(chunk.relative_path for chunk in chunks)
        stats = ExportStats(
            files=total,
            size=sum(chunk.original_size for chunk in chunks),
            tokens=sum(tokens or 0 for tokens in known_tokens.values()),
        )

        self._cache.replace("".join(full_parts))
        if self._persist_selection is not None:
            try:
                self._persist_selection()
            except Exception as exc:
                logger.warning("Failed to save selection after generation: %s", exc)

        self._progress(total, total, STAGE_COMPLETED)
        logger.info("Generation completed in %.3fs", time.monotonic() - started)
        return ExportResult(
            preview_content=preview.text(),
            is_truncated=preview.truncated,
            stats=stats,
        )


__all__ = [
    "EXPORT_CONCURRENCY",
    "PREVIEW_LIMIT_BYTES",
    "ExportGenerator",
    "ExportResult",
    "ProcessedChunk",
    "process_file",
    "render_header",
    "render_template",
]
