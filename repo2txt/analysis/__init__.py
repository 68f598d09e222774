"""Content analysis: binary detection, token counting, background enrichment."""

from __future__ import annotations

from .analyzer import ANALYSIS_BATCH_SIZE, ANALYSIS_CONCURRENCY, BackgroundAnalyzer
from .tokens import (
    BINARY_PLACEHOLDER,
    FileMeasurement,
    count_tokens,
    decode_text,
    is_binary_content,
    measure_file,
    tokens_for_bytes,
)

__all__ = [
    "ANALYSIS_BATCH_SIZE",
    "ANALYSIS_CONCURRENCY",
    "BINARY_PLACEHOLDER",
    "BackgroundAnalyzer",
    "FileMeasurement",
    "count_tokens",
    "decode_text",
    "is_binary_content",
    "measure_file",
    "tokens_for_bytes",
]
