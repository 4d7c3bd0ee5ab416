"""Dead-letter inspection and bulk recovery."""

from __future__ import annotations

from .manager import REQUEUE_CONCURRENCY, DeadletterManager
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

__all__ = [
    "REQUEUE_CONCURRENCY",
    "CountDeadletters",
    "DeadletterManager",
    "DeadletterOperation",
    "DeadletterResult",
    "DeleteDeadletter",
    "ListDeadletters",
    "RequeueDeadletters",
    "RequeueOutcome",
    "RequeueSummary",
]
