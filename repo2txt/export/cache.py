"""Single-slot cache holding the full text of the most recent export."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from ..errors import ResourceLimitError

logger = logging.getLogger(__name__)

CLIPBOARD_LIMIT_BYTES = 10 * 1024 * 1024


class ExportCache:
    """Lock-guarded optional export text, replaced wholesale on every export."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._content: str | None = None

    def replace(self, content: str) -> None:
        with self._lock:
            self._content = content

    def get(self) -> str | None:
        with self._lock:
            return self._content

    def clear(self) -> None:
        with self._lock:
            self._content = None


def copy_from_cache(
    cache: ExportCache,
    writer: Callable[[str], object],
    limit_bytes: int = CLIPBOARD_LIMIT_BYTES,
) -> int:
    """Hand the cached export to ``writer`` and return its size in bytes.

    Raises ``ResourceLimitError`` when nothing has been exported yet or the
    content exceeds ``limit_bytes``; content is never truncated.
    """
    content = cache.get()
    if content is None:
        raise ResourceLimitError("No content generated yet")
    size = len(content.encode("utf-8"))
    if size > limit_bytes:
        raise ResourceLimitError(
            f"Content too large for clipboard ({size // (1024 * 1024)} MB). "
            f"Maximum size is {limit_bytes // (1024 * 1024)} MB. Please save to file instead.",
            details={"size": size, "limit": limit_bytes},
        )
    writer(content)
    logger.info("Full content copied from cache (%d bytes)", size)
    return size


__all__ = [
    "CLIPBOARD_LIMIT_BYTES",
    "ExportCache",
    "copy_from_cache",
]
