"""Unit tests for the crawlctl command line."""

from __future__ import annotations

import typing as typ

import pytest

from crawlctl import cli
from crawlctl.deadletters import (
    CountDeadletters,
    DeleteDeadletter,
    ListDeadletters,
    RequeueDeadletters,
)
from tests.helpers.events import event_line, valid_lines, write_archive
from tests.helpers.gateway import FakeCrawlerGateway, make_deadletter

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the CLI from reconfiguring femtologging during tests."""
    monkeypatch.setattr(cli, "configure_logging", lambda level: (level, False))


def _deadletter_gateway(count: int, **kwargs: typ.Any) -> FakeCrawlerGateway:
    return FakeCrawlerGateway(
        deadletters=[make_deadletter(index) for index in range(count)], **kwargs
    )


class TestBackfillCommand:
    """``crawlctl backfill``."""

    def test_backfill_reports_progress_and_summary(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Progress lines follow each batch and a summary closes the run."""
        archive = write_archive(tmp_path / "events.json", valid_lines(25))
        gateway = FakeCrawlerGateway()

        exit_code = cli.main(["backfill", str(archive)], gateway=gateway)

        out = capsys.readouterr().out
        assert exit_code == cli.EXIT_OK
        assert gateway.batch_sizes == [10, 10, 5]
        assert "queued 10 requests" in out
        assert "queued 20 requests" in out
        assert "done: queued 25 requests from 25 lines (0 errors)" in out

    def test_backfill_test_mode_submits_nothing(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """--test counts requests without calling the crawler."""
        archive = write_archive(tmp_path / "events.json", valid_lines(12))
        gateway = FakeCrawlerGateway()

        exit_code = cli.main(["backfill", str(archive), "--test"], gateway=gateway)

        out = capsys.readouterr().out
        assert exit_code == cli.EXIT_OK
        assert gateway.submit_attempts == 0
        assert "counted 10 requests (" in out
        assert "done: counted 12 requests" in out
        assert "queued" not in out

    def test_backfill_prints_one_line_per_error(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Skipped lines are printed and make the exit code non-zero."""
        lines = [event_line(1), b"{oops", event_line(2, scope="none")]
        archive = write_archive(tmp_path / "events.json", lines)

        exit_code = cli.main(["backfill", str(archive)], gateway=FakeCrawlerGateway())

        out = capsys.readouterr().out
        assert exit_code == cli.EXIT_FAILURE
        assert out.count("error: ") == 2
        assert "(2 errors)" in out

    def test_backfill_missing_source(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """An unavailable source is reported and fails the command."""
        exit_code = cli.main(
            ["backfill", str(tmp_path / "missing.json")], gateway=FakeCrawlerGateway()
        )

        assert exit_code == cli.EXIT_FAILURE
        assert "Cannot open backfill source" in capsys.readouterr().out


class TestDeadlettersCommand:
    """``crawlctl deadletters``."""

    def test_count(self, capsys: pytest.CaptureFixture[str]) -> None:
        """count prints the number of dead letters."""
        exit_code = cli.main(["deadletters", "count"], gateway=_deadletter_gateway(3))

        assert exit_code == cli.EXIT_OK
        assert capsys.readouterr().out.strip() == "3"

    def test_list(self, capsys: pytest.CaptureFixture[str]) -> None:
        """list prints one line per record with its reason."""
        cli.main(["deadletters", "list"], gateway=_deadletter_gateway(2))

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 2
        assert lines[0].startswith(make_deadletter(0).urn)
        assert lines[0].endswith("rate limited")

    def test_requeue_all_reports_failures(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """requeue --all attempts every record and reports each failure."""
        failing = make_deadletter(2).urn
        gateway = _deadletter_gateway(12, failing_urns={failing})

        exit_code = cli.main(["deadletters", "requeue", "--all"], gateway=gateway)

        out = capsys.readouterr().out
        assert exit_code == cli.EXIT_FAILURE
        assert len(gateway.requeued) == 11
        assert f"error: requeue {failing} failed" in out
        assert "requeued 11 of 12 dead letters" in out

    def test_requeue_unknown_urn_fails(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Requeueing an unknown urn reports NotFound."""
        exit_code = cli.main(
            ["deadletters", "requeue", "urn:missing"], gateway=_deadletter_gateway(1)
        )

        assert exit_code == cli.EXIT_FAILURE
        assert "Dead letter not found: urn:missing" in capsys.readouterr().out

    def test_delete(self, capsys: pytest.CaptureFixture[str]) -> None:
        """delete removes the named record."""
        gateway = _deadletter_gateway(1)
        urn = make_deadletter(0).urn

        exit_code = cli.main(["deadletters", "delete", urn], gateway=gateway)

        assert exit_code == cli.EXIT_OK
        assert gateway.deleted == [urn]
        assert f"deleted {urn}" in capsys.readouterr().out

    def test_requeue_needs_a_target(self) -> None:
        """requeue requires either a urn or --all."""
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["deadletters", "requeue"], gateway=_deadletter_gateway(0))
        assert excinfo.value.code == cli.EXIT_USAGE


@pytest.mark.parametrize(
    ("argv", "expected"),
    [
        (["deadletters", "count"], CountDeadletters()),
        (["deadletters", "list"], ListDeadletters()),
        (["deadletters", "requeue", "--all"], RequeueDeadletters(urn=None)),
        (["deadletters", "requeue", "urn:a"], RequeueDeadletters(urn="urn:a")),
        (["deadletters", "delete", "urn:b"], DeleteDeadletter(urn="urn:b")),
    ],
)
def test_deadletter_operation_mapping(argv: list[str], expected: object) -> None:
    """Parsed arguments become tagged operation requests."""
    args = cli._build_parser().parse_args(argv)  # noqa: SLF001 - parser under test
    assert cli.deadletter_operation(args) == expected


def test_queue_submits_single_request(capsys: pytest.CaptureFixture[str]) -> None:
    """queue sends one plain request to the chosen queue."""
    gateway = FakeCrawlerGateway()

    exit_code = cli.main(
        ["queue", "org", "https://api.github.com/orgs/octo", "--queue", "immediate"],
        gateway=gateway,
    )

    assert exit_code == cli.EXIT_OK
    ((queue_name, items),) = gateway.submissions
    assert queue_name == "immediate"
    assert [(item.type, item.url, item.payload) for item in items] == [
        ("org", "https://api.github.com/orgs/octo", None)
    ]
    assert "queued org" in capsys.readouterr().out


def test_missing_configuration_exits_with_usage_code(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """Without a gateway URL the command stops before doing any work."""
    monkeypatch.delenv("CRAWLCTL_CRAWLER_URL", raising=False)

    exit_code = cli.main(["deadletters", "count"])

    assert exit_code == cli.EXIT_USAGE
    assert "configuration error" in capsys.readouterr().out
