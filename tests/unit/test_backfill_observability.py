"""Unit tests for backfill error categorisation and structured events."""

from __future__ import annotations

import datetime as dt

import pytest

from crawlctl.backfill.errors import (
    BatchSubmissionError,
    InvalidRecordError,
    RecordDecodeError,
    SourceStreamError,
    SourceUnavailableError,
)
from crawlctl.backfill.ingestor import BackfillProgress
from crawlctl.backfill.observability import (
    BackfillEventLogger,
    BackfillEventType,
    BackfillRunContext,
    ErrorCategory,
    categorize_error,
)
from crawlctl.gateway.errors import (
    DeadletterNotFoundError,
    GatewayAPIError,
    GatewayConfigError,
    GatewayResponseShapeError,
    GatewayTransportError,
)
from tests.helpers.femtologging_capture import capture_logs

_LOGGER_NAME = "crawlctl.backfill.observability"


class TestCategorizeError:
    """Errors map onto reporting categories."""

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (GatewayAPIError.http_error("submit", 503), ErrorCategory.TRANSIENT),
            (GatewayAPIError.http_error("submit", 400), ErrorCategory.CLIENT_ERROR),
            (DeadletterNotFoundError("urn:x"), ErrorCategory.NOT_FOUND),
            (
                GatewayTransportError("crawler submit transport failure"),
                ErrorCategory.TRANSIENT,
            ),
            (
                GatewayResponseShapeError.invalid("list deadletters", "bad"),
                ErrorCategory.SCHEMA_DRIFT,
            ),
            (GatewayConfigError.missing_url(), ErrorCategory.CONFIGURATION),
            (SourceUnavailableError("x", "gone"), ErrorCategory.SOURCE),
            (SourceStreamError("x", "reset"), ErrorCategory.SOURCE),
            (RecordDecodeError.malformed("bad"), ErrorCategory.RECORD),
            (InvalidRecordError.missing_id(), ErrorCategory.RECORD),
            (ValueError("odd"), ErrorCategory.UNKNOWN),
        ],
    )
    def test_categories(self, error: BaseException, expected: ErrorCategory) -> None:
        """Each error type lands in its category."""
        assert categorize_error(error) == expected

    def test_batch_submission_uses_cause(self) -> None:
        """Submission failures are categorised by what the crawler said."""
        error = BatchSubmissionError(
            "later", 10, GatewayAPIError.http_error("submit", 502)
        )
        assert categorize_error(error) == ErrorCategory.TRANSIENT


class TestBackfillEventLogger:
    """Structured events carry the run's counters."""

    @pytest.fixture
    def context(self) -> BackfillRunContext:
        """Return a sample run context."""
        return BackfillRunContext(
            location="events.json",
            test_mode=False,
            started_at=dt.datetime(2016, 3, 1, 12, 0, tzinfo=dt.UTC),
        )

    def test_batch_submitted_reports_totals(self) -> None:
        """Batch events include queue, size and running totals."""
        progress = BackfillProgress(count=20, bytes=4096)
        with capture_logs(_LOGGER_NAME) as capture:
            BackfillEventLogger().log_batch_submitted("later", 10, progress)

        capture.wait_for_count(1)
        record = capture.records[0]
        assert record.level == "INFO"
        assert BackfillEventType.BATCH_SUBMITTED in record.message
        assert "queue=later" in record.message
        assert "count=20" in record.message
        assert "bytes=4096" in record.message

    def test_batch_failed_is_an_error(self) -> None:
        """Rejected batches are logged at ERROR with their category."""
        error = BatchSubmissionError(
            "later", 10, GatewayAPIError.http_error("submit", 503)
        )
        with capture_logs(_LOGGER_NAME) as capture:
            BackfillEventLogger().log_batch_failed(error)

        capture.wait_for_count(1)
        record = capture.records[0]
        assert record.level == "ERROR"
        assert BackfillEventType.BATCH_FAILED in record.message
        assert "error_category=transient" in record.message

    def test_run_completed_reports_counters(self, context: BackfillRunContext) -> None:
        """Completion events include every counter."""
        progress = BackfillProgress(count=25, bytes=100, lines=27, decode_errors=2)
        with capture_logs(_LOGGER_NAME) as capture:
            BackfillEventLogger().log_run_completed(
                context, progress, dt.timedelta(seconds=1.5)
            )

        capture.wait_for_count(1)
        message = capture.records[0].message
        assert BackfillEventType.RUN_COMPLETED in message
        assert "duration_seconds=1.500" in message
        assert "count=25" in message
        assert "decode_errors=2" in message
