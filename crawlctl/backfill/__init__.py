"""Backfill archived events into the crawler with flow control."""

from __future__ import annotations

from .builder import build_request, decode_record, request_from_record
from .errors import (
    BackfillError,
    BatchSubmissionError,
    InvalidRecordError,
    RecordDecodeError,
    RecordError,
    SourceStreamError,
    SourceUnavailableError,
)
from .ingestor import (
    BACKFILL_QUEUE,
    BATCH_SIZE,
    BackfillIngestor,
    BackfillOptions,
    BackfillProgress,
    BackfillResult,
    run_backfill,
)
from .observability import (
    BackfillEventLogger,
    BackfillEventType,
    ErrorCategory,
    categorize_error,
)
from .source import open_source, split_lines

__all__ = [
    "BACKFILL_QUEUE",
    "BATCH_SIZE",
    "BackfillError",
    "BackfillEventLogger",
    "BackfillEventType",
    "BackfillIngestor",
    "BackfillOptions",
    "BackfillProgress",
    "BackfillResult",
    "BatchSubmissionError",
    "ErrorCategory",
    "InvalidRecordError",
    "RecordDecodeError",
    "RecordError",
    "SourceStreamError",
    "SourceUnavailableError",
    "build_request",
    "categorize_error",
    "decode_record",
    "open_source",
    "request_from_record",
    "run_backfill",
    "split_lines",
]
