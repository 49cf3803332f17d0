import io
import json
from pathlib import Path

from rich.console import Console

from pulse_trend.interface import cli
from pulse_trend.interface.cli import CLIApplication
from pulse_trend.models import write_report


def _console() -> Console:
    return Console(file=io.StringIO(), width=200)


def test_cli_routes_to_command(monkeypatch) -> None:
    captured = {}

    class FakeArchive:
        def __init__(self, console, settings, args):
            captured["settings"] = settings
            captured["args"] = args

        def run(self):
            captured["ran"] = True
            return 0

    monkeypatch.setitem(cli.COMMANDS, "archive", FakeArchive)

    exit_code = CLIApplication(_console()).run(["archive"])

    assert exit_code == 0
    assert captured["ran"] is True
    assert captured["args"].command == "archive"


def test_cli_rejects_output_dir_outside_project(tmp_path: Path, monkeypatch) -> None:
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)

    assert CLIApplication(_console()).run(["--output-dir", "../outside", "archive"]) == 1


def test_cli_merge_then_finalize(tmp_path: Path, monkeypatch, write_shard, shard_payload_factory) -> None:
    monkeypatch.chdir(tmp_path)
    root = tmp_path / "pulse-report"
    write_shard("shard-1", shard_payload_factory(2, 2, 0, 0, 5.0, "2024-05-01T09:00:00Z"), root=root)
    write_shard("shard-2", shard_payload_factory(1, 1, 0, 0, 5.0, "2024-05-01T09:00:02Z"), root=root)
    console = _console()

    assert CLIApplication(console).run(["merge", "--cleanup"]) == 0
    assert CLIApplication(console).run(["finalize"]) == 0

    assert (root / "playwright-pulse-report.json").exists()
    assert len(list((root / "history").glob("trend-*.json"))) == 1
    assert (root / "trend.xlsx").exists()
    assert "Merged report saved" in console.file.getvalue()


def test_cli_archive_without_report_fails(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert CLIApplication(_console()).run(["archive"]) == 1


def test_cli_trends_writes_json(tmp_path: Path, monkeypatch, make_report) -> None:
    monkeypatch.chdir(tmp_path)
    console = _console()
    report_path = tmp_path / "pulse-report" / "playwright-pulse-report.json"
    write_report(make_report(outcomes={"suite > a": "passed"}), report_path)
    assert CLIApplication(console).run(["workbook"]) == 0

    assert CLIApplication(console).run(["trends", "--from", "workbook", "--out", "trends.json"]) == 0

    payload = json.loads((tmp_path / "trends.json").read_text(encoding="utf-8"))
    assert payload["tests"][0]["fullTestName"] == "suite > a"
    assert payload["tests"][0]["history"][0]["status"] == "passed"


def test_cli_trends_unwritable_out_path_fails(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "blocker").write_text("a file, not a directory", encoding="utf-8")
    console = _console()

    exit_code = CLIApplication(console).run(["trends", "--out", "blocker/trends.json"])

    assert exit_code == 1
    assert "write trends failed" in console.file.getvalue()


def test_cli_finalize_fails_when_every_shard_is_corrupt(tmp_path: Path, monkeypatch, make_report, write_shard) -> None:
    monkeypatch.chdir(tmp_path)
    root = tmp_path / "pulse-report"
    write_report(make_report(), root / "playwright-pulse-report.json")
    write_shard("shard-1", "{ corrupt", root=root)

    assert CLIApplication(_console()).run(["finalize"]) == 1
    assert not (root / "history").exists()
