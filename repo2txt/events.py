"""Event contract emitted to a front end during analysis and export.

Events are ``(name, payload)`` pairs. Nothing inside repo2txt consumes them;
they only report progress outward.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from queue import Empty, Queue
from typing import Protocol

GENERATION_PROGRESS = "generation-progress"
FILES_UPDATED = "files-updated"
ANALYSIS_COMPLETED = "analysis-completed"

STAGE_PREPARING = "preparing"
STAGE_PROCESSING = "processing"
STAGE_WRITING = "writing"
STAGE_COMPLETED = "completed"


@dataclass(frozen=True)
class ProgressEvent:
    """Export progress: ``current`` of ``total`` files at ``stage``."""

    current: int
    total: int
    stage: str

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


class EventSink(Protocol):
    def emit(self, name: str, payload: object) -> None: ...


class NullEventSink:
    """Sink that drops every event."""

    def emit(self, name: str, payload: object) -> None:
        return None


class QueueEventSink:
    """Thread-safe sink that buffers events until drained."""

    def __init__(self) -> None:
        self._events: Queue[tuple[str, object]] = Queue()

    def emit(self, name: str, payload: object) -> None:
        self._events.put((name, payload))

    def drain(self) -> list[tuple[str, object]]:
        """Drain all buffered events in emission order."""
        out: list[tuple[str, object]] = []
        while True:
            try:
                out.append(self._events.get_nowait())
            except Empty:
                break
        return out


__all__ = [
    "ANALYSIS_COMPLETED",
    "FILES_UPDATED",
    "GENERATION_PROGRESS",
    "STAGE_COMPLETED",
    "STAGE_PREPARING",
    "STAGE_PROCESSING",
    "STAGE_WRITING",
    "EventSink",
    "NullEventSink",
    "ProgressEvent",
    "QueueEventSink",
]
