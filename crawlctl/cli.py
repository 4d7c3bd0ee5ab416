"""Command line for backfilling events and recovering dead letters.

Examples
--------
Dry-run a backfill to see how many requests an archive yields::

    crawlctl --url https://crawler.example.test backfill events.json --test

Requeue every dead letter::

    crawlctl deadletters requeue --all

The crawler URL and token default to ``CRAWLCTL_CRAWLER_URL`` and
``CRAWLCTL_CRAWLER_TOKEN``.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import typing as typ

from crawlctl.backfill import (
    BackfillError,
    BackfillIngestor,
    BackfillOptions,
    BackfillProgress,
    SourceUnavailableError,
)
from crawlctl.deadletters import (
    CountDeadletters,
    DeadletterManager,
    DeadletterOperation,
    DeleteDeadletter,
    ListDeadletters,
    RequeueDeadletters,
    RequeueSummary,
)
from crawlctl.gateway import (
    DEFAULT_POLICY,
    GatewayConfig,
    GatewayConfigError,
    GatewayError,
    HttpCrawlerGateway,
    WorkItemRequest,
)
from crawlctl.logging import configure_logging, get_logger, log_warning

if typ.TYPE_CHECKING:
    from crawlctl.gateway import CrawlerGateway, DeadletterRecord

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="crawlctl", description=__doc__.splitlines()[0])
    parser.add_argument("--url", default=None, help="Crawler base URL")
    parser.add_argument("--token", default=None, help="Crawler bearer token")
    parser.add_argument(
        "--log-level",
        default=os.environ.get("CRAWLCTL_LOG_LEVEL", "WARNING"),
        help="Log level (default: CRAWLCTL_LOG_LEVEL or WARNING)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    backfill = commands.add_parser(
        "backfill", help="Queue archived events from a line-delimited source"
    )
    backfill.add_argument("location", help="URL or path of the event archive")
    backfill.add_argument(
        "--test",
        action="store_true",
        help="Build and count requests without submitting them",
    )

    queue = commands.add_parser("queue", help="Queue a single request")
    queue.add_argument("type", help="Request type, e.g. repo or org")
    queue.add_argument("request_url", metavar="url", help="URL to crawl")
    queue.add_argument("--queue", default="normal", help="Target queue name")

    deadletters = commands.add_parser("deadletters", help="Manage dead letters")
    actions = deadletters.add_subparsers(dest="action", required=True)
    actions.add_parser("count", help="Print the number of dead letters")
    actions.add_parser("list", help="List dead letters")
    requeue = actions.add_parser("requeue", help="Requeue dead letters")
    target = requeue.add_mutually_exclusive_group(required=True)
    target.add_argument("urn", nargs="?", default=None, help="Dead letter urn")
    target.add_argument(
        "--all", action="store_true", help="Requeue every dead letter"
    )
    delete = actions.add_parser("delete", help="Delete a dead letter")
    delete.add_argument("urn", help="Dead letter urn")
    return parser


def deadletter_operation(args: argparse.Namespace) -> DeadletterOperation:
    """Translate parsed ``deadletters`` arguments into an operation request."""
    match args.action:
        case "count":
            return CountDeadletters()
        case "list":
            return ListDeadletters()
        case "requeue":
            return RequeueDeadletters(urn=None if args.all else args.urn)
        case "delete":
            return DeleteDeadletter(urn=args.urn)
    msg = f"unknown deadletters action: {args.action}"
    raise ValueError(msg)


def _progress_printer(verb: str) -> typ.Callable[[BackfillProgress], None]:
    def print_progress(progress: BackfillProgress) -> None:
        print(
            f"{verb} {progress.count} requests ({progress.bytes} bytes read)",
            flush=True,
        )

    return print_progress


def _print_error(error: BackfillError) -> None:
    print(f"error: {error}", flush=True)


def _format_deadletter(record: DeadletterRecord) -> str:
    extra = record.extra
    return f"{record.urn}  {extra.type or '-'}  {extra.url or '-'}  {extra.reason or ''}"


async def _run_backfill(gateway: CrawlerGateway, args: argparse.Namespace) -> int:
    verb = "counted" if args.test else "queued"
    ingestor = BackfillIngestor(
        gateway, on_progress=_progress_printer(verb), on_error=_print_error
    )
    try:
        result = await ingestor.run(args.location, BackfillOptions(test_mode=args.test))
    except SourceUnavailableError as exc:
        print(f"error: {exc}")
        return EXIT_FAILURE

    progress = result.progress
    if result.stream_error is not None:
        print(f"aborted: {verb} {progress.count} requests before the source failed")
        return EXIT_FAILURE
    print(
        f"done: {verb} {progress.count} requests from {progress.lines} lines "
        f"({progress.errors} errors)"
    )
    return EXIT_OK if result.ok else EXIT_FAILURE


async def _run_queue(gateway: CrawlerGateway, args: argparse.Namespace) -> int:
    request = WorkItemRequest(
        type=args.type, url=args.request_url, policy=DEFAULT_POLICY
    )
    await gateway.submit_batch(args.queue, [request])
    print(f"queued {args.type} {args.request_url} on {args.queue}")
    return EXIT_OK


def _report_requeue(summary: RequeueSummary) -> int:
    for failure in summary.failures:
        print(f"error: requeue {failure.urn} failed: {failure.error}")
    print(
        f"requeued {summary.requeued} of {summary.attempted} dead letters"
    )
    return EXIT_OK if not summary.failures else EXIT_FAILURE


async def _run_deadletters(gateway: CrawlerGateway, args: argparse.Namespace) -> int:
    operation = deadletter_operation(args)
    result = await DeadletterManager(gateway).dispatch(operation)
    match operation:
        case CountDeadletters():
            print(result)
        case ListDeadletters():
            records = typ.cast("list[DeadletterRecord]", result)
            for record in records:
                print(_format_deadletter(record))
        case RequeueDeadletters(urn=None):
            return _report_requeue(typ.cast("RequeueSummary", result))
        case RequeueDeadletters(urn=urn):
            print(f"requeued {urn}")
        case DeleteDeadletter(urn=urn):
            print(f"deleted {urn}")
    return EXIT_OK


_COMMANDS: dict[
    str,
    typ.Callable[[CrawlerGateway, argparse.Namespace], typ.Awaitable[int]],
] = {
    "backfill": _run_backfill,
    "queue": _run_queue,
    "deadletters": _run_deadletters,
}


async def _run(
    args: argparse.Namespace, gateway: CrawlerGateway | None
) -> int:
    command = _COMMANDS[args.command]
    try:
        if gateway is not None:
            return await command(gateway, args)
        config = GatewayConfig.from_env(url=args.url, token=args.token)
        async with HttpCrawlerGateway(config) as http_gateway:
            return await command(http_gateway, args)
    except GatewayError as exc:
        print(f"error: {exc}")
        return EXIT_FAILURE


def main(
    argv: list[str] | None = None,
    *,
    gateway: CrawlerGateway | None = None,
) -> int:
    """Run the ``crawlctl`` command line.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.
    gateway : CrawlerGateway | None, optional
        Gateway to use instead of an HTTP gateway built from the
        configuration.

    Returns
    -------
    int
        0 on success, 1 when any error was reported, 2 for configuration
        errors.

    """
    args = _build_parser().parse_args(argv)

    normalized, invalid = configure_logging(args.log_level)
    if invalid:
        log_warning(
            logger,
            "Invalid log level %r, falling back to %s",
            args.log_level,
            normalized,
        )

    try:
        return asyncio.run(_run(args, gateway))
    except GatewayConfigError as exc:
        print(f"configuration error: {exc}")
        return EXIT_USAGE


if __name__ == "__main__":
    raise SystemExit(main())
