"""Dead-letter operation requests and their results."""

from __future__ import annotations

import dataclasses
import typing as typ

if typ.TYPE_CHECKING:
    from crawlctl.gateway.models import DeadletterRecord


@dataclasses.dataclass(frozen=True, slots=True)
class CountDeadletters:
    """Ask for the number of dead letters."""


@dataclasses.dataclass(frozen=True, slots=True)
class ListDeadletters:
    """Ask for every dead letter."""


@dataclasses.dataclass(frozen=True, slots=True)
class RequeueDeadletters:
    """Requeue one dead letter, or all of them when ``urn`` is ``None``."""

    urn: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class DeleteDeadletter:
    """Delete one dead letter."""

    urn: str


type DeadletterOperation = (
    CountDeadletters | ListDeadletters | RequeueDeadletters | DeleteDeadletter
)


@dataclasses.dataclass(frozen=True, slots=True)
class RequeueOutcome:
    """Result of requeueing a single dead letter."""

    urn: str
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        """Return whether the requeue was accepted."""
        return self.error is None


@dataclasses.dataclass(frozen=True, slots=True)
class RequeueSummary:
    """Per-urn outcomes of a bulk requeue, in dead-letter list order."""

    outcomes: tuple[RequeueOutcome, ...]

    @property
    def attempted(self) -> int:
        """Return how many requeues were dispatched."""
        return len(self.outcomes)

    @property
    def requeued(self) -> int:
        """Return how many requeues succeeded."""
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    @property
    def failures(self) -> tuple[RequeueOutcome, ...]:
        """Return the outcomes that failed."""
        return tuple(outcome for outcome in self.outcomes if not outcome.succeeded)


type DeadletterResult = int | list[DeadletterRecord] | RequeueSummary | None
