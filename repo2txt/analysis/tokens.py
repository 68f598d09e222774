"""Binary sniffing, lossy decoding, and token counting for file contents."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import tiktoken

logger = logging.getLogger(__name__)

BINARY_SNIFF_BYTES = 1024
ENCODING_NAME = "cl100k_base"
BINARY_PLACEHOLDER = "*Binary file*"


def is_binary_content(data: bytes) -> bool:
    """Return whether any of the first 1 KiB of ``data`` is a NUL byte."""
    return b"\x00" in data[:BINARY_SNIFF_BYTES]


def decode_text(data: bytes) -> str:
    """Decode UTF-8, replacing undecodable bytes instead of failing."""
    return data.decode("utf-8", errors="replace")


@lru_cache(maxsize=1)
def _get_encoding() -> tiktoken.Encoding | None:
    try:
        return tiktoken.get_encoding(ENCODING_NAME)
    except Exception as exc:  # tiktoken surfaces network/cache failures with assorted types
        logger.warning("Token encoding %s unavailable, using length estimate: %s", ENCODING_NAME, exc)
        return None


def count_tokens(text: str) -> int:
    """Count ``cl100k_base`` tokens, or estimate ``len(text) // 4`` without it."""
    encoding = _get_encoding()
    if encoding is None:
        return len(text) // 4
    return len(encoding.encode(text, disallowed_special=()))


def tokens_for_bytes(data: bytes) -> int:
    """Token count for raw file bytes; binary content always counts as zero."""
    if is_binary_content(data):
        return 0
    return count_tokens(decode_text(data))


@dataclass(frozen=True)
class FileMeasurement:
    size: int
    token_count: int


def measure_file(path: Path) -> FileMeasurement:
    """Stat and tokenize one file; any I/O failure degrades that value to 0."""
    try:
        size = int(path.stat().st_size)
    except OSError:
        size = 0
    try:
        data = path.read_bytes()
    except OSError as exc:
        logger.debug("Cannot read %s: %s", path, exc)
        return FileMeasurement(size=size, token_count=0)
    if is_binary_content(data):
        logger.debug("File %s detected as binary during analysis", path)
        return FileMeasurement(size=size, token_count=0)
    return FileMeasurement(size=size, token_count=count_tokens(decode_text(data)))


__all__ = [
    "BINARY_PLACEHOLDER",
    "BINARY_SNIFF_BYTES",
    "ENCODING_NAME",
    "FileMeasurement",
    "count_tokens",
    "decode_text",
    "is_binary_content",
    "measure_file",
    "tokens_for_bytes",
]
