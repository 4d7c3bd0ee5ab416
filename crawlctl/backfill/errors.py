"""Errors raised and reported by the backfill pipeline."""

from __future__ import annotations


class BackfillError(Exception):
    """Base class for backfill errors."""


class SourceUnavailableError(BackfillError):
    """Raised when the backfill source cannot be opened."""

    def __init__(self, location: str, reason: str) -> None:
        """Initialise with the source location and failure reason."""
        self.location = location
        self.reason = reason
        super().__init__(f"Cannot open backfill source {location}: {reason}")


class SourceStreamError(BackfillError):
    """Reported when the source stream fails after it was opened."""

    def __init__(self, location: str, reason: str) -> None:
        """Initialise with the source location and failure reason."""
        self.location = location
        self.reason = reason
        super().__init__(f"Backfill source {location} failed mid-stream: {reason}")


class RecordError(BackfillError):
    """Base class for per-line failures; the line is skipped."""

    def __init__(self, message: str, *, line_number: int | None = None) -> None:
        """Initialise with a message and the offending line number, if known."""
        self.line_number = line_number
        super().__init__(message)

    def at_line(self, line_number: int) -> RecordError:
        """Return the same error annotated with ``line_number``."""
        self.line_number = line_number
        return self


class RecordDecodeError(RecordError):
    """Raised when a line is not a JSON object."""

    @classmethod
    def malformed(cls, detail: str) -> RecordDecodeError:
        """Return an error for a line that fails to decode."""
        return cls(f"Malformed event record: {detail}")

    @classmethod
    def not_an_object(cls, kind: str) -> RecordDecodeError:
        """Return an error for a line that decodes to a non-object value."""
        return cls(f"Event record must be a JSON object, got {kind}")


class InvalidRecordError(RecordError):
    """Raised when a decoded record cannot be turned into a request."""

    @classmethod
    def missing_base_url(cls, event_id: object) -> InvalidRecordError:
        """Return an error for a record with neither repo.url nor org.url."""
        return cls(f"Event {event_id!r} has neither repo.url nor org.url")

    @classmethod
    def missing_id(cls) -> InvalidRecordError:
        """Return an error for a record without an id."""
        return cls("Event record has no id")


class BatchSubmissionError(BackfillError):
    """Reported when the crawler rejects a batch; the batch is not retried."""

    def __init__(self, queue_name: str, size: int, cause: BaseException) -> None:
        """Initialise with the target queue, batch size and underlying error."""
        self.queue_name = queue_name
        self.size = size
        self.cause = cause
        super().__init__(
            f"Submitting {size} requests to queue {queue_name!r} failed: {cause}"
        )
