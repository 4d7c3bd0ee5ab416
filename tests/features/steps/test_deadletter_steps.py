"""Behavioural tests for dead-letter recovery."""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
from pytest_bdd import given, parsers, scenario, then, when

from crawlctl.deadletters import DeadletterManager, RequeueSummary
from crawlctl.gateway import DeadletterNotFoundError
from tests.helpers.gateway import FakeCrawlerGateway, make_deadletter


def run_async[T](coro: typ.Coroutine[typ.Any, typ.Any, T]) -> T:
    """Run async coroutines in sync BDD step functions."""
    return asyncio.run(coro)


class RecoveryContext(typ.TypedDict, total=False):
    """Shared state used by BDD steps."""

    gateway: FakeCrawlerGateway
    summary: RequeueSummary
    error: Exception


@scenario(
    "../deadletter_recovery.feature",
    "Every dead letter is requeued with bounded concurrency",
)
def test_requeue_all_bounded() -> None:
    """Behavioural test: bulk requeue stays within ten in-flight calls."""


@scenario(
    "../deadletter_recovery.feature",
    "A failing requeue does not stop the others",
)
def test_requeue_all_isolates_failures() -> None:
    """Behavioural test: one failure leaves the other requeues intact."""


@scenario(
    "../deadletter_recovery.feature",
    "Requeueing an unknown urn is reported as not found",
)
def test_requeue_unknown_urn() -> None:
    """Behavioural test: unknown urns are never silently accepted."""


@pytest.fixture
def recovery_context() -> RecoveryContext:
    """Provide an empty context for each scenario."""
    return {}


@given(parsers.parse("a dead-letter store holding {count:d} records"))
def store_with_records(recovery_context: RecoveryContext, count: int) -> None:
    """Seed the fake crawler with dead letters."""
    recovery_context["gateway"] = FakeCrawlerGateway(
        deadletters=[make_deadletter(index) for index in range(count)],
        delay_s=0.005,
    )


@given(parsers.parse("requeueing record {index:d} fails"))
def requeue_fails_for(recovery_context: RecoveryContext, index: int) -> None:
    """Make one record's requeue fail on the crawler side."""
    recovery_context["gateway"].failing_urns.add(make_deadletter(index).urn)


@when("all dead letters are requeued")
def requeue_all(recovery_context: RecoveryContext) -> None:
    """Run a bulk requeue."""
    manager = DeadletterManager(recovery_context["gateway"])
    recovery_context["summary"] = run_async(manager.requeue_all())


@when(parsers.parse('the dead letter "{urn}" is requeued'))
def requeue_one(recovery_context: RecoveryContext, urn: str) -> None:
    """Requeue one dead letter, keeping any error for later steps."""
    manager = DeadletterManager(recovery_context["gateway"])
    try:
        run_async(manager.requeue_one(urn))
    except DeadletterNotFoundError as exc:
        recovery_context["error"] = exc


@then(parsers.parse("{count:d} requeue attempts were made"))
def requeue_attempts(recovery_context: RecoveryContext, count: int) -> None:
    """Assert how many requeues reached the crawler."""
    assert recovery_context["gateway"].requeue_attempts == count
    assert recovery_context["summary"].attempted == count


@then(parsers.parse("no more than {limit:d} requeues were in flight at once"))
def requeues_bounded(recovery_context: RecoveryContext, limit: int) -> None:
    """Assert the admission window held."""
    assert 0 < recovery_context["gateway"].max_in_flight <= limit


@then(parsers.parse("{count:d} requeue failure is reported"))
def requeue_failures(recovery_context: RecoveryContext, count: int) -> None:
    """Assert the failures collected in the summary."""
    assert len(recovery_context["summary"].failures) == count


@then("the dead-letter store is empty")
def store_is_empty(recovery_context: RecoveryContext) -> None:
    """Assert every record left the store."""
    assert recovery_context["gateway"].deadletters == []


@then(parsers.parse("the dead-letter store holds {count:d} record"))
def store_holds(recovery_context: RecoveryContext, count: int) -> None:
    """Assert how many records remain."""
    assert len(recovery_context["gateway"].deadletters) == count


@then("the requeue is rejected as not found")
def requeue_not_found(recovery_context: RecoveryContext) -> None:
    """Assert the unknown urn surfaced as NotFound."""
    assert isinstance(recovery_context.get("error"), DeadletterNotFoundError)
    assert recovery_context["gateway"].requeued == []
