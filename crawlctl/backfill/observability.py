"""Structured log events for backfill runs.

Every event is a single pre-formatted line prefixed with its event type so
log aggregators can filter on it, e.g.
``[backfill.batch.submitted] queue=later size=10 count=20 bytes=18342``.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from crawlctl.gateway.errors import (
    DeadletterNotFoundError,
    GatewayAPIError,
    GatewayConfigError,
    GatewayResponseShapeError,
    GatewayTransportError,
)
from crawlctl.logging import get_logger, log_error, log_info, log_warning

from .errors import (
    BatchSubmissionError,
    RecordError,
    SourceStreamError,
    SourceUnavailableError,
)

if typ.TYPE_CHECKING:
    import datetime as dt

    from .ingestor import BackfillProgress

logger = get_logger(__name__)

_HTTP_SERVER_ERROR_THRESHOLD = 500


class BackfillEventType(enum.StrEnum):
    """Structured log event types emitted during a backfill run."""

    RUN_STARTED = "backfill.run.started"
    RUN_COMPLETED = "backfill.run.completed"
    RUN_FAILED = "backfill.run.failed"
    BATCH_SUBMITTED = "backfill.batch.submitted"
    BATCH_FAILED = "backfill.batch.failed"
    RECORD_SKIPPED = "backfill.record.skipped"


class ErrorCategory(enum.StrEnum):
    """Coarse error classes used in log lines and summaries."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    NOT_FOUND = "not_found"
    SCHEMA_DRIFT = "schema_drift"
    SOURCE = "source"
    RECORD = "record"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (DeadletterNotFoundError, ErrorCategory.NOT_FOUND),
    (GatewayTransportError, ErrorCategory.TRANSIENT),
    (GatewayResponseShapeError, ErrorCategory.SCHEMA_DRIFT),
    (GatewayConfigError, ErrorCategory.CONFIGURATION),
    (SourceUnavailableError, ErrorCategory.SOURCE),
    (SourceStreamError, ErrorCategory.SOURCE),
    (RecordError, ErrorCategory.RECORD),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Classify ``exc`` for reporting.

    Batch submission errors are classified by their underlying cause.
    """
    if isinstance(exc, BatchSubmissionError):
        return categorize_error(exc.cause)

    # NotFound is an API error too, so it must be matched before the status check
    if isinstance(exc, GatewayAPIError) and not isinstance(
        exc, DeadletterNotFoundError
    ):
        if (
            exc.status_code is not None
            and exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD
        ):
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


@dataclasses.dataclass(frozen=True, slots=True)
class BackfillRunContext:
    """Identifies a single backfill run in log lines."""

    location: str
    test_mode: bool
    started_at: dt.datetime


class BackfillEventLogger:
    """Emit structured backfill events through femtologging."""

    def log_run_started(self, context: BackfillRunContext) -> None:
        """Log backfill run start."""
        log_info(
            logger,
            "[%s] location=%s test_mode=%s started_at=%s",
            BackfillEventType.RUN_STARTED,
            context.location,
            context.test_mode,
            context.started_at.isoformat(),
        )

    def log_batch_submitted(
        self, queue_name: str, size: int, progress: BackfillProgress
    ) -> None:
        """Log a successful submission with running totals."""
        log_info(
            logger,
            "[%s] queue=%s size=%d count=%d bytes=%d",
            BackfillEventType.BATCH_SUBMITTED,
            queue_name,
            size,
            progress.count,
            progress.bytes,
        )

    def log_batch_failed(self, error: BatchSubmissionError) -> None:
        """Log a rejected batch; its requests are not retried."""
        log_error(
            logger,
            "[%s] queue=%s size=%d error_type=%s error_category=%s "
            "error_message=%s",
            BackfillEventType.BATCH_FAILED,
            error.queue_name,
            error.size,
            type(error.cause).__name__,
            categorize_error(error),
            str(error.cause),
        )

    def log_record_skipped(self, error: RecordError) -> None:
        """Log a skipped source line."""
        log_warning(
            logger,
            "[%s] line=%s error_type=%s error_message=%s",
            BackfillEventType.RECORD_SKIPPED,
            error.line_number,
            type(error).__name__,
            str(error),
        )

    def log_run_completed(
        self,
        context: BackfillRunContext,
        progress: BackfillProgress,
        duration: dt.timedelta,
    ) -> None:
        """Log run completion with the final counters."""
        log_info(
            logger,
            "[%s] location=%s duration_seconds=%.3f count=%d bytes=%d lines=%d "
            "decode_errors=%d invalid_records=%d submissions=%d failed_batches=%d",
            BackfillEventType.RUN_COMPLETED,
            context.location,
            duration.total_seconds(),
            progress.count,
            progress.bytes,
            progress.lines,
            progress.decode_errors,
            progress.invalid_records,
            progress.submissions,
            progress.failed_batches,
        )

    def log_run_failed(
        self,
        context: BackfillRunContext,
        error: BaseException,
        duration: dt.timedelta,
    ) -> None:
        """Log a run that ended on a source error."""
        log_error(
            logger,
            "[%s] location=%s duration_seconds=%.3f error_type=%s "
            "error_category=%s error_message=%s",
            BackfillEventType.RUN_FAILED,
            context.location,
            duration.total_seconds(),
            type(error).__name__,
            categorize_error(error),
            str(error),
        )
