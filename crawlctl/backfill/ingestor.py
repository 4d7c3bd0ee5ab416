"""Backfill archived events into the crawler's ``later`` queue.

The ingestor streams a line-delimited event archive, builds one work-item
request per line and submits them to the crawler in batches of
:data:`BATCH_SIZE`. Submission is strictly sequential: the source is not
read while a batch is in flight, so at most one batch plus the batch being
filled are held in memory, and requests reach the crawler in source order.

Nothing is retried. Lines that fail to decode or cannot be addressed are
skipped, and a batch the crawler rejects is reported and dropped; the run
carries on with the next line in both cases. Only a source failure ends a
run early.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import typing as typ

from crawlctl.gateway.errors import GatewayError

from .builder import build_request
from .errors import (
    BackfillError,
    BatchSubmissionError,
    InvalidRecordError,
    RecordDecodeError,
    RecordError,
    SourceStreamError,
    SourceUnavailableError,
)
from .observability import BackfillEventLogger, BackfillRunContext
from .source import open_source

if typ.TYPE_CHECKING:
    import httpx

    from crawlctl.gateway.client import CrawlerGateway
    from crawlctl.gateway.models import WorkItemRequest

BATCH_SIZE = 10
BACKFILL_QUEUE = "later"

type ProgressCallback = typ.Callable[[BackfillProgress], None]
type ErrorCallback = typ.Callable[[BackfillError], None]


@dataclasses.dataclass(slots=True)
class BackfillProgress:
    """Counters for a single backfill run.

    Attributes
    ----------
    count
        Requests accepted by the crawler (or counted, in test mode).
    bytes
        Bytes of source lines consumed, line terminators excluded.
    lines
        Source lines consumed, blank ones included.
    decode_errors
        Lines skipped because they were not JSON objects.
    invalid_records
        Lines skipped because the event had no addressable URL.
    submissions
        Batches accepted by the crawler.
    failed_batches
        Batches the crawler rejected.
    failed_requests
        Requests lost with rejected batches.

    """

    count: int = 0
    bytes: int = 0
    lines: int = 0
    decode_errors: int = 0
    invalid_records: int = 0
    submissions: int = 0
    failed_batches: int = 0
    failed_requests: int = 0

    @property
    def errors(self) -> int:
        """Total per-line and per-batch errors reported so far."""
        return self.decode_errors + self.invalid_records + self.failed_batches


@dataclasses.dataclass(frozen=True, slots=True)
class BackfillOptions:
    """Knobs for :meth:`BackfillIngestor.run`.

    ``test_mode`` builds and counts requests without submitting them.
    """

    test_mode: bool = False
    queue_name: str = BACKFILL_QUEUE
    batch_size: int = BATCH_SIZE

    def __post_init__(self) -> None:
        """Reject unusable batch sizes."""
        if self.batch_size < 1:
            msg = f"batch_size must be positive, got: {self.batch_size}"
            raise ValueError(msg)


@dataclasses.dataclass(frozen=True, slots=True)
class BackfillResult:
    """Outcome of a backfill run.

    ``stream_error`` is set when the source failed part-way through; any
    requests still waiting in the unfinished batch were not submitted.
    """

    location: str
    progress: BackfillProgress
    stream_error: SourceStreamError | None = None

    @property
    def ok(self) -> bool:
        """Return whether the run finished without any reported error."""
        return self.stream_error is None and self.progress.errors == 0


@dataclasses.dataclass(slots=True)
class _RunState:
    """Mutable state threaded through one run."""

    options: BackfillOptions
    progress: BackfillProgress
    batch: list[WorkItemRequest] = dataclasses.field(default_factory=list)


class BackfillIngestor:
    """Stream archived events into a crawler queue with backpressure."""

    def __init__(
        self,
        gateway: CrawlerGateway,
        *,
        http_client: httpx.AsyncClient | None = None,
        event_logger: BackfillEventLogger | None = None,
        on_progress: ProgressCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        """Bind the ingestor to a gateway and optional reporting callbacks.

        ``http_client`` is only used to fetch ``http(s)`` sources; a private
        client is created per run when omitted.
        """
        self._gateway = gateway
        self._http_client = http_client
        self._event_logger = event_logger or BackfillEventLogger()
        self._on_progress = on_progress
        self._on_error = on_error

    async def run(
        self, location: str, options: BackfillOptions | None = None
    ) -> BackfillResult:
        """Backfill every event in ``location``.

        Raises
        ------
        SourceUnavailableError
            If the source cannot be opened. Nothing has been submitted.

        """
        resolved = options or BackfillOptions()
        started_at = dt.datetime.now(dt.UTC)
        context = BackfillRunContext(
            location=location,
            test_mode=resolved.test_mode,
            started_at=started_at,
        )
        state = _RunState(options=resolved, progress=BackfillProgress())
        self._event_logger.log_run_started(context)

        stream_error: SourceStreamError | None = None
        try:
            async with open_source(location, http_client=self._http_client) as lines:
                async for line in lines:
                    await self._consume_line(state, line)
                await self._flush(state)
        except SourceUnavailableError as exc:
            self._event_logger.log_run_failed(
                context, exc, dt.datetime.now(dt.UTC) - started_at
            )
            raise
        except SourceStreamError as exc:
            stream_error = exc
            self._event_logger.log_run_failed(
                context, exc, dt.datetime.now(dt.UTC) - started_at
            )
            self._report_error(exc)

        if stream_error is None:
            self._event_logger.log_run_completed(
                context, state.progress, dt.datetime.now(dt.UTC) - started_at
            )
        return BackfillResult(
            location=location,
            progress=state.progress,
            stream_error=stream_error,
        )

    async def _consume_line(self, state: _RunState, line: bytes) -> None:
        progress = state.progress
        progress.lines += 1
        progress.bytes += len(line)
        try:
            request = build_request(line)
        except RecordError as exc:
            self._record_skipped(progress, exc.at_line(progress.lines))
            return
        if request is None:
            return

        state.batch.append(request)
        if len(state.batch) >= state.options.batch_size:
            await self._flush(state)

    async def _flush(self, state: _RunState) -> None:
        """Hand the current batch to the crawler and start a new one."""
        batch, state.batch = state.batch, []
        if not batch:
            return
        if state.options.test_mode:
            state.progress.count += len(batch)
            self._report_progress(state.progress)
            return
        await self._submit(state, batch)

    async def _submit(self, state: _RunState, batch: list[WorkItemRequest]) -> None:
        progress = state.progress
        queue_name = state.options.queue_name
        try:
            await self._gateway.submit_batch(queue_name, batch)
        except GatewayError as exc:
            error = BatchSubmissionError(queue_name, len(batch), exc)
            progress.failed_batches += 1
            progress.failed_requests += len(batch)
            self._event_logger.log_batch_failed(error)
            self._report_error(error)
            return

        progress.count += len(batch)
        progress.submissions += 1
        self._event_logger.log_batch_submitted(queue_name, len(batch), progress)
        self._report_progress(progress)

    def _record_skipped(self, progress: BackfillProgress, error: RecordError) -> None:
        if isinstance(error, RecordDecodeError):
            progress.decode_errors += 1
        elif isinstance(error, InvalidRecordError):
            progress.invalid_records += 1
        self._event_logger.log_record_skipped(error)
        self._report_error(error)

    def _report_progress(self, progress: BackfillProgress) -> None:
        if self._on_progress is not None:
            self._on_progress(progress)

    def _report_error(self, error: BackfillError) -> None:
        if self._on_error is not None:
            self._on_error(error)


async def run_backfill(
    gateway: CrawlerGateway,
    location: str,
    options: BackfillOptions | None = None,
    *,
    on_progress: ProgressCallback | None = None,
    on_error: ErrorCallback | None = None,
) -> BackfillResult:
    """Run one backfill with a fresh :class:`BackfillIngestor`."""
    ingestor = BackfillIngestor(gateway, on_progress=on_progress, on_error=on_error)
    return await ingestor.run(location, options)
