"""Folding shard result files into one canonical run report."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from pulse_trend.errors import NoShardResultsError, ReportLoadError
from pulse_trend.merging.discovery import DEFAULT_REPORT_FILE
from pulse_trend.models.result import TestRecord
from pulse_trend.models.run import ReportMetadata, RunRecord, RunReport, load_report, write_report


logger = logging.getLogger(__name__)

_RESULT_LIST = TypeAdapter(list[TestRecord])


@dataclass
class MergeSummary:
    """Which shard files contributed to a merge and which were rejected."""

    merged: list[Path] = field(default_factory=list)
    skipped: dict[Path, str] = field(default_factory=dict)


@dataclass
class _RunAccumulator:
    total_tests: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: float = 0.0
    timestamp: datetime | None = None
    generated_at: datetime | None = None
    environment: dict[str, Any] | None = None
    results: list[TestRecord] = field(default_factory=list)

    def add(self, shard: RunReport) -> None:
        run = shard.run
        self.total_tests += run.total_tests
        self.passed += run.passed
        self.failed += run.failed
        self.skipped += run.skipped
        self.duration += run.duration
        self.results.extend(shard.results)
        if run.environment:
            self.environment = run.environment
        if run.timestamp is not None and (self.timestamp is None or run.timestamp > self.timestamp):
            self.timestamp = run.timestamp
        if "metadata" in shard.model_fields_set:
            generated_at = shard.metadata.generated_at
            if self.generated_at is None or generated_at > self.generated_at:
                self.generated_at = generated_at


def mint_run_id() -> str:
    return f"merged-{uuid4()}"


class ShardMerger:
    """Combines partial shard reports into one run report.

    Counters and durations are summed, test lists concatenated and the latest
    timestamp wins. Inputs are folded in path order, so the result does not
    depend on the order files were discovered in.
    """

    def merge(self, paths: Iterable[str | Path], run_id: str | None = None) -> RunReport:
        report, _ = self.merge_with_summary(paths, run_id=run_id)
        return report

    def merge_with_summary(
        self, paths: Iterable[str | Path], run_id: str | None = None
    ) -> tuple[RunReport, MergeSummary]:
        ordered = sorted({Path(path) for path in paths})
        summary = MergeSummary()
        accumulator = _RunAccumulator()

        for path in ordered:
            try:
                shard = load_report(path)
            except ReportLoadError as exc:
                logger.warning("Skipping shard %s: %s", path, exc.cause)
                summary.skipped[path] = exc.cause
                continue
            accumulator.add(shard)
            summary.merged.append(path)

        if not summary.merged:
            raise NoShardResultsError(ordered)

        if accumulator.timestamp is None:
            logger.warning("None of the %d merged shard(s) carried a usable timestamp", len(summary.merged))

        run = RunRecord(
            id=run_id or mint_run_id(),
            timestamp=accumulator.timestamp,
            total_tests=accumulator.total_tests,
            passed=accumulator.passed,
            failed=accumulator.failed,
            skipped=accumulator.skipped,
            duration=accumulator.duration,
            environment=accumulator.environment,
        )
        metadata = ReportMetadata(generated_at=accumulator.generated_at or datetime.now(UTC))
        logger.info(
            "Merged %d shard report(s): %d tests, %d passed, %d failed, %d skipped",
            len(summary.merged),
            run.total_tests,
            run.passed,
            run.failed,
            run.skipped,
        )
        return RunReport(run=run, results=accumulator.results, metadata=metadata), summary

    def merge_worker_results(self, paths: Iterable[str | Path], run: RunRecord) -> RunReport:
        """Merge per-worker result lists under an already-known run.

        Retried attempts of the same test collapse to the one with the most
        retries, and the run counters are recounted from the surviving results.
        """
        ordered = sorted({Path(path) for path in paths})
        collected: list[TestRecord] = []
        readable = 0
        for path in ordered:
            try:
                collected.extend(_RESULT_LIST.validate_json(path.read_bytes()))
            except FileNotFoundError:
                logger.warning("Shard results file not found: %s", path)
                continue
            except (OSError, ValidationError) as exc:
                logger.warning("Could not read results from %s: %s", path, exc)
                continue
            readable += 1

        if readable == 0:
            raise NoShardResultsError(ordered)

        results = collapse_retries(collected)
        merged_run = RunRecord.from_results(
            results,
            run_id=run.id or mint_run_id(),
            timestamp=run.timestamp,
            duration=run.duration,
            environment=run.environment,
        )
        return RunReport(run=merged_run, results=results)


def collapse_retries(results: Iterable[TestRecord]) -> list[TestRecord]:
    """Keep one attempt per test: the one with the most retries, later attempts winning ties.

    Tests without an ``id`` are keyed by name.
    """
    latest: dict[str, TestRecord] = {}
    for result in results:
        key = result.id or result.name
        existing = latest.get(key)
        if existing is None or result.retries >= existing.retries:
            latest[key] = result
    return list(latest.values())


def write_canonical_report(
    report: RunReport, output_dir: str | Path, file_name: str = DEFAULT_REPORT_FILE
) -> Path:
    """Overwrite the run directory's canonical report."""
    path = write_report(report, Path(output_dir) / file_name)
    logger.info("Merged report saved as %s", path)
    return path
