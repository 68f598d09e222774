"""Background size/token analysis for freshly scanned files.

Each scan hands its file list to ``BackgroundAnalyzer.schedule`` tagged with
the scan epoch. Work runs on a daemon thread that fans out into a bounded
thread pool. Two checkpoints make stale work invisible once a newer epoch
starts: every unit re-checks the epoch before touching the file, and every
batch is applied/emitted only while the epoch is still current.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from ..events import ANALYSIS_COMPLETED, FILES_UPDATED, EventSink
from ..file_tree_model import FileUpdate, NodeIndex, ScanEpoch
from .tokens import FileMeasurement, measure_file

logger = logging.getLogger(__name__)

ANALYSIS_CONCURRENCY = 50
ANALYSIS_BATCH_SIZE = 100


class BackgroundAnalyzer:
    """Enrich index nodes with size/token counts off the interactive path."""

    def __init__(
        self,
        epoch: ScanEpoch,
        index: NodeIndex,
        events: EventSink,
        *,
        measure: Callable[[Path], FileMeasurement] = measure_file,
        concurrency: int = ANALYSIS_CONCURRENCY,
        batch_size: int = ANALYSIS_BATCH_SIZE,
    ) -> None:
        self._epoch = epoch
        self._index = index
        self._events = events
        self._measure = measure
        self._concurrency = max(1, concurrency)
        self._batch_size = max(1, batch_size)
        self._lock = threading.Lock()
        self._workers: list[threading.Thread] = []

    def schedule(self, scan_epoch: int, items: Sequence[tuple[str, Path]]) -> threading.Thread:
        """Start analysis of ``(id, absolute path)`` pairs for ``scan_epoch``."""
        worker = threading.Thread(
            target=self._run,
            args=(scan_epoch, list(items)),
            name=f"repo2txt-analyzer-{scan_epoch}",
            daemon=True,
        )
        with self._lock:
            self._workers = [thread for thread in self._workers if thread.is_alive()]
            self._workers.append(worker)
        worker.start()
        return worker

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every scheduled analysis finished; ``False`` on timeout.

        ``timeout`` bounds the whole call, not each worker.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._lock:
            workers = list(self._workers)
        for worker in workers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            worker.join(remaining)
            if worker.is_alive():
                return False
        return True

    def _analyze_one(self, scan_epoch: int, node_id: str, path: Path) -> FileUpdate | None:
        if not self._epoch.is_current(scan_epoch):
            return None
        measurement = self._measure(path)
        return FileUpdate(id=node_id, size=measurement.size, token_count=measurement.token_count)

    def _publish(self, scan_epoch: int, batch: list[FileUpdate]) -> bool:
        """Apply and emit ``batch`` unless a newer scan has started.

        The sink runs under the epoch publish lock only, so it may start a
        rescan itself; other threads calling ``advance`` wait for it.
        """
        updates = list(batch)

        def apply_and_emit() -> None:
            self._index.apply_updates(updates)
            self._events.emit(FILES_UPDATED, updates)

        published, _ = self._epoch.run_if_current(scan_epoch, apply_and_emit)
        return published

    def _run(self, scan_epoch: int, items: list[tuple[str, Path]]) -> None:
        logger.info("Background analysis of %d files (scan %d)", len(items), scan_epoch)
        batch: list[FileUpdate] = []
        cancelled = False
        with ThreadPoolExecutor(
            max_workers=self._concurrency,
            thread_name_prefix=f"repo2txt-analyze-{scan_epoch}",
        ) as pool:
            futures = [pool.submit(self._analyze_one, scan_epoch, node_id, path) for node_id, path in items]
            for future in as_completed(futures):
                if not self._epoch.is_current(scan_epoch):
                    cancelled = True
                    break
                try:
                    update = future.result()
                except Exception:
                    logger.exception("Analysis task failed (scan %d)", scan_epoch)
                    continue
                if update is None:
                    continue
                batch.append(update)
                if len(batch) >= self._batch_size:
                    if not self._publish(scan_epoch, batch):
                        cancelled = True
                        break
                    batch.clear()
            if cancelled:
                for future in futures:
                    future.cancel()

        if cancelled:
            logger.info("Background analysis cancelled (scan %d)", scan_epoch)
            return
        if batch and not self._publish(scan_epoch, batch):
            logger.info("Background analysis cancelled (scan %d)", scan_epoch)
            return
        completed, _ = self._epoch.run_if_current(
            scan_epoch,
            lambda: self._events.emit(ANALYSIS_COMPLETED, None),
        )
        if completed:
            logger.info("Background analysis complete (scan %d)", scan_epoch)
        else:
            logger.info("Background analysis cancelled (scan %d)", scan_epoch)


__all__ = [
    "ANALYSIS_BATCH_SIZE",
    "ANALYSIS_CONCURRENCY",
    "BackgroundAnalyzer",
]
