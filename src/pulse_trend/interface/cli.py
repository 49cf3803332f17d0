from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from ..config import PulseSettings, resolve_output_dir
from ..errors import PulseError, StoreWriteError
from ..models.run import load_report
from ..pipeline import finalize_run, history_store, merge_run, workbook_store
from ..storage.base import ArchiveResult
from ..trends import TrendAssembler


class CLIApplication:
    """Top-level command router."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self.parser = argparse.ArgumentParser(
            prog="pulse-trend",
            description="Merge sharded test results and maintain bounded run history.",
        )
        self.parser.add_argument(
            "--output-dir",
            "-o",
            dest="output_dir",
            help="Report directory (default: PULSE_OUTPUT_DIR or ./pulse-report). Must be inside the project.",
        )
        self.parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging.")
        subparsers = self.parser.add_subparsers(dest="command", required=True)

        merge = subparsers.add_parser("merge", help="Merge shard reports into the canonical report.")
        merge.add_argument(
            "--source",
            choices=("shards", "snapshots", "workers"),
            default="shards",
            help="Merge per-shard subdirectories, accumulated pulse-results snapshots, or per-worker result lists.",
        )
        merge.add_argument("--cleanup", action="store_true", help="Delete shard inputs after merging.")

        subparsers.add_parser("archive", help="Archive the canonical report into the JSON history.")
        subparsers.add_parser("workbook", help="Add the canonical report to the trend workbook.")

        trends = subparsers.add_parser("trends", help="Export per-test history series as JSON.")
        trends.add_argument(
            "--from",
            dest="store",
            choices=("json", "workbook"),
            default="json",
            help="Which history store to read (default: json).",
        )
        trends.add_argument("--out", dest="out_path", help="Write JSON here instead of stdout.")

        finalize = subparsers.add_parser("finalize", help="Merge if sharded, then update both history stores.")
        finalize.add_argument("--source", choices=("shards", "snapshots", "workers"), default="shards")
        finalize.add_argument("--cleanup", action="store_true")

    def run(self, argv: Sequence[str] | None = None) -> int:
        args = self.parser.parse_args(argv)
        configure_logging(self.console, args.verbose)
        try:
            settings = build_settings(args.output_dir)
        except PulseError as exc:
            self.console.print(f"[red]{escape(str(exc))}[/red]")
            return 1
        command = COMMANDS[args.command](self.console, settings, args)
        return command.run()


def configure_logging(console: Console, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def build_settings(output_dir: str | None) -> PulseSettings:
    settings = PulseSettings()
    resolved = resolve_output_dir(output_dir)
    if resolved is not None:
        settings = settings.model_copy(update={"output_dir": resolved})
    return settings


class Command:
    """Base for subcommands; ``execute`` raises, ``run`` maps errors to exit codes."""

    def __init__(self, console: Console, settings: PulseSettings, args: argparse.Namespace) -> None:
        self.console = console
        self.settings = settings
        self.args = args

    def run(self) -> int:
        try:
            self.execute()
        except PulseError as exc:
            self.console.print(f"[red]{escape(str(exc))}[/red]")
            return 1
        return 0

    def execute(self) -> None:
        raise NotImplementedError

    def print_archive(self, label: str, result: ArchiveResult) -> None:
        verb = "Replaced" if result.replaced else "Archived"
        self.console.print(f"[green]{verb}[/green] run {result.run_key} in {label} ({result.path})")
        if result.evicted:
            self.console.print(f"   Pruned {len(result.evicted)} old run(s): {result.evicted}")


class MergeCommand(Command):
    """Pipeline driver for `pulse-trend merge`."""

    def execute(self) -> None:
        self.console.print(f"[cyan]Merging reports in {self.settings.output_dir}...")
        report, summary, path = merge_run(self.settings, source=self.args.source, cleanup=self.args.cleanup)
        run = report.run
        self.console.print(f"   Merged {len(summary.merged)} report(s), skipped {len(summary.skipped)}")
        self.console.print(f"   Total tests: {run.total_tests}")
        self.console.print(f"   Passed: {run.passed} | Failed: {run.failed} | Skipped: {run.skipped}")
        self.console.print(f"Merged report saved to {path}", style="bold green")


class ArchiveCommand(Command):
    def execute(self) -> None:
        report = load_report(self.settings.report_path)
        self.print_archive("history", history_store(self.settings).archive(report))


class WorkbookCommand(Command):
    def execute(self) -> None:
        report = load_report(self.settings.report_path)
        self.print_archive("trend workbook", workbook_store(self.settings).archive(report))


class TrendsCommand(Command):
    def execute(self) -> None:
        store = workbook_store(self.settings) if self.args.store == "workbook" else history_store(self.settings)
        trends = TrendAssembler().assemble(store.load_window())
        payload = trends.model_dump_json(by_alias=True, indent=2)
        if self.args.out_path:
            out_path = Path(self.args.out_path).expanduser()
            try:
                out_path.parent.mkdir(parents=True, exist_ok=True)
                out_path.write_text(payload, encoding="utf-8")
            except OSError as exc:
                raise StoreWriteError(out_path, "write trends", exc) from exc
            self.console.print(
                f"Wrote {len(trends.tests)} test histories over {len(trends.overall)} run(s) to {out_path}",
                style="bold green",
            )
        else:
            self.console.print_json(payload)


class FinalizeCommand(Command):
    def execute(self) -> None:
        outcome = finalize_run(self.settings, source=self.args.source, cleanup=self.args.cleanup)
        if outcome.history is not None:
            self.print_archive("history", outcome.history)
        if outcome.workbook is not None:
            self.print_archive("trend workbook", outcome.workbook)
        for stage, error in outcome.errors.items():
            self.console.print(f"[red]{stage}:[/red] {escape(str(error))}")
        self.failed = not outcome.ok

    def run(self) -> int:
        self.failed = False
        code = super().run()
        return 1 if self.failed else code


COMMANDS: dict[str, type[Command]] = {
    "merge": MergeCommand,
    "archive": ArchiveCommand,
    "workbook": WorkbookCommand,
    "trends": TrendsCommand,
    "finalize": FinalizeCommand,
}
