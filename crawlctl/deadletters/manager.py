"""Inspect and recover the crawler's dead letters.

The crawler's dead-letter store is the only source of truth: every call
reads or mutates it directly and nothing is cached between calls. Bulk
requeue works on the list as it stood when the call started; dead letters
added or removed concurrently by someone else are not tracked.
"""

from __future__ import annotations

import asyncio
import typing as typ

from crawlctl.logging import get_logger, log_info, log_warning

from .operations import (
    CountDeadletters,
    DeadletterOperation,
    DeadletterResult,
    DeleteDeadletter,
    ListDeadletters,
    RequeueDeadletters,
    RequeueOutcome,
    RequeueSummary,
)

if typ.TYPE_CHECKING:
    from crawlctl.gateway.client import CrawlerGateway
    from crawlctl.gateway.models import DeadletterRecord

logger = get_logger(__name__)

REQUEUE_CONCURRENCY = 10


class DeadletterManager:
    """Count, list, requeue and delete dead letters through a gateway."""

    def __init__(
        self,
        gateway: CrawlerGateway,
        *,
        concurrency: int = REQUEUE_CONCURRENCY,
    ) -> None:
        """Bind the manager to ``gateway``.

        ``concurrency`` caps simultaneous requeue calls in :meth:`requeue_all`.
        """
        if concurrency < 1:
            msg = f"concurrency must be positive, got: {concurrency}"
            raise ValueError(msg)
        self._gateway = gateway
        self._concurrency = concurrency

    async def count(self) -> int:
        """Return the current number of dead letters."""
        return await self._gateway.count_deadletters()

    async def list(self) -> list[DeadletterRecord]:
        """Return all dead letters in the order the crawler reports them."""
        return await self._gateway.list_deadletters()

    async def requeue_one(self, urn: str) -> None:
        """Requeue the dead letter ``urn``.

        Raises
        ------
        DeadletterNotFoundError
            If ``urn`` is not in the dead-letter store.

        """
        await self._gateway.requeue_deadletter(urn)
        log_info(logger, "Requeued dead letter %s", urn)

    async def delete_one(self, urn: str) -> None:
        """Delete the dead letter ``urn``.

        Raises
        ------
        DeadletterNotFoundError
            If ``urn`` is not in the dead-letter store.

        """
        await self._gateway.delete_deadletter(urn)
        log_info(logger, "Deleted dead letter %s", urn)

    async def requeue_all(self) -> RequeueSummary:
        """Requeue every dead letter currently listed.

        A fixed pool of workers drains the listed urns, so no more than the
        configured concurrency of requeue calls are outstanding at once.
        Every urn is attempted; a failed requeue is recorded in its outcome
        and never stops the others. Returns once every attempt has settled.
        """
        records = await self.list()
        urns = [record.urn for record in records]
        outcomes: list[RequeueOutcome | None] = [None] * len(urns)

        pending: asyncio.Queue[tuple[int, str]] = asyncio.Queue()
        for index, urn in enumerate(urns):
            pending.put_nowait((index, urn))

        async def worker() -> None:
            while True:
                try:
                    index, urn = pending.get_nowait()
                except asyncio.QueueEmpty:
                    return
                outcomes[index] = await self._attempt_requeue(urn)

        async with asyncio.TaskGroup() as group:
            for _ in range(min(self._concurrency, len(urns))):
                group.create_task(worker())

        summary = RequeueSummary(
            outcomes=tuple(outcome for outcome in outcomes if outcome is not None)
        )
        log_info(
            logger,
            "Requeue of %d dead letters finished: %d requeued, %d failed",
            summary.attempted,
            summary.requeued,
            len(summary.failures),
        )
        return summary

    async def _attempt_requeue(self, urn: str) -> RequeueOutcome:
        try:
            await self.requeue_one(urn)
        except Exception as exc:  # noqa: BLE001 - outcome carries the error
            log_warning(
                logger,
                "Requeue of dead letter %s failed: %s: %s",
                urn,
                type(exc).__name__,
                exc,
            )
            return RequeueOutcome(urn=urn, error=exc)
        return RequeueOutcome(urn=urn)

    async def dispatch(self, operation: DeadletterOperation) -> DeadletterResult:
        """Run ``operation`` and return its result.

        Counts return ``int``, listings return the records, bulk requeues
        return a :class:`RequeueSummary` and single-item mutations return
        ``None``.
        """
        match operation:
            case CountDeadletters():
                return await self.count()
            case ListDeadletters():
                return await self.list()
            case RequeueDeadletters(urn=None):
                return await self.requeue_all()
            case RequeueDeadletters(urn=str() as urn):
                await self.requeue_one(urn)
                return None
            case DeleteDeadletter(urn=urn):
                await self.delete_one(urn)
                return None
            case _:
                typ.assert_never(operation)
