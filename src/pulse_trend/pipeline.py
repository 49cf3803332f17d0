"""End-of-run orchestration: merge, then feed both history stores."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from pulse_trend.config import PulseSettings
from pulse_trend.errors import NoShardResultsError, PulseError
from pulse_trend.merging import (
    MergeSummary,
    ShardMerger,
    cleanup_shard_directories,
    discover_result_snapshots,
    discover_shard_reports,
    discover_worker_result_files,
    merge_attachments,
    write_canonical_report,
)
from pulse_trend.models.run import RunReport, load_report
from pulse_trend.storage import ArchiveResult, JSONHistoryStore, WorkbookTrendStore


logger = logging.getLogger(__name__)

MergeSource = Literal["shards", "snapshots", "workers"]


@dataclass
class PipelineOutcome:
    """What each stage of :func:`finalize_run` produced or why it failed."""

    report: RunReport | None = None
    report_path: Path | None = None
    merge_summary: MergeSummary | None = None
    history: ArchiveResult | None = None
    workbook: ArchiveResult | None = None
    errors: dict[str, Exception] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def history_store(settings: PulseSettings) -> JSONHistoryStore:
    return JSONHistoryStore(
        settings.history_dir,
        max_runs=settings.history_max_runs,
        prefix=settings.history_prefix,
    )


def workbook_store(settings: PulseSettings) -> WorkbookTrendStore:
    return WorkbookTrendStore(settings.workbook_path, max_runs=settings.workbook_max_runs)


def merge_run(
    settings: PulseSettings,
    source: MergeSource = "shards",
    cleanup: bool = False,
    merger: ShardMerger | None = None,
) -> tuple[RunReport, MergeSummary, Path]:
    """Merge shard output under ``settings.output_dir`` into the canonical report.

    Raises ``NoShardResultsError`` when nothing could be merged.
    """
    merger = merger or ShardMerger()
    if source == "workers":
        return _merge_worker_results(settings, cleanup, merger)
    if source == "shards":
        paths = discover_shard_reports(
            settings.output_dir,
            settings.report_file_name,
            exclude=(settings.history_subdir, settings.results_subdir),
        )
    else:
        paths = discover_result_snapshots(settings.results_dir)
    if not paths:
        raise NoShardResultsError()

    report, summary = merger.merge_with_summary(paths)
    if source == "shards":
        shard_dirs = [path.parent for path in summary.merged]
        merge_attachments(shard_dirs, settings.output_dir)
    report_path = write_canonical_report(report, settings.output_dir, settings.report_file_name)

    if cleanup:
        targets = [path.parent for path in summary.merged] if source == "shards" else summary.merged
        cleanup_shard_directories(targets)
    return report, summary, report_path


def _merge_worker_results(
    settings: PulseSettings, cleanup: bool, merger: ShardMerger
) -> tuple[RunReport, MergeSummary, Path]:
    # Worker lists carry tests only; the run record comes from the canonical report
    paths = discover_worker_result_files(settings.output_dir)
    if not paths:
        raise NoShardResultsError()
    base = load_report(settings.report_path)
    report = merger.merge_worker_results(paths, base.run)
    report_path = write_canonical_report(report, settings.output_dir, settings.report_file_name)
    summary = MergeSummary(merged=list(paths))
    if cleanup:
        cleanup_shard_directories(summary.merged)
    return report, summary, report_path


def finalize_run(
    settings: PulseSettings,
    source: MergeSource = "shards",
    cleanup: bool = False,
) -> PipelineOutcome:
    """Merge shards if there are any, then archive into both stores.

    Only a run with no shard output at all falls back to the canonical report
    already on disk; a failed merge archives nothing.

    The JSON history and the workbook are independent: a failure in one is
    recorded and logged, and the other still runs.
    """
    outcome = PipelineOutcome()
    try:
        outcome.report, outcome.merge_summary, outcome.report_path = merge_run(
            settings, source=source, cleanup=cleanup
        )
    except NoShardResultsError as exc:
        if exc.searched:
            logger.error("Merge failed in %s: %s", settings.output_dir, exc)
            outcome.errors["merge"] = exc
            return outcome
        logger.info("No shard results to merge; using canonical report at %s", settings.report_path)
    except PulseError as exc:
        # The canonical report on disk may be from an earlier run
        logger.error("Merge failed in %s: %s", settings.output_dir, exc)
        outcome.errors["merge"] = exc
        return outcome

    if outcome.report is None:
        try:
            outcome.report = load_report(settings.report_path)
            outcome.report_path = settings.report_path
        except PulseError as exc:
            logger.error("No run report available: %s", exc)
            outcome.errors["report"] = exc
            return outcome

    try:
        outcome.history = history_store(settings).archive(outcome.report)
    except (PulseError, OSError) as exc:
        logger.error("Archiving to %s failed: %s", settings.history_dir, exc)
        outcome.errors["history"] = exc

    try:
        outcome.workbook = workbook_store(settings).archive(outcome.report)
    except (PulseError, OSError) as exc:
        logger.error("Updating trend workbook %s failed: %s", settings.workbook_path, exc)
        outcome.errors["workbook"] = exc

    return outcome
