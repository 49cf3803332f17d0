"""Per-test history series reconstructed from a retention window."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from pulse_trend.models.history import HistoryEntry
from pulse_trend.models.result import TestRecord, TestStatus
from pulse_trend.storage.base import HistoryStore


class TrendPoint(BaseModel):
    """One test's outcome in one retained run."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    run_key: int = Field(alias="runKey")
    status: TestStatus
    duration: float
    timestamp: datetime | None = None


class RunTrendPoint(BaseModel):
    """Run-level counters for one retained run."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    run_key: int = Field(alias="runKey")
    timestamp: datetime | None = None
    duration: float
    total_tests: int = Field(alias="totalTests")
    passed: int
    failed: int
    skipped: int


class TestHistory(BaseModel):
    """Ordered outcomes of a single test across the retained runs."""

    __test__ = False  # Prevent pytest from collecting this as a test class

    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(alias="fullTestName")
    title: str = Field(alias="testTitle")
    series: list[TrendPoint] = Field(default_factory=list, alias="history")

    @property
    def latest(self) -> TrendPoint | None:
        return self.series[-1] if self.series else None

    @property
    def pass_rate(self) -> float:
        """Share of retained runs in which the test passed."""
        if not self.series:
            return 0.0
        passed = sum(1 for point in self.series if point.status is TestStatus.PASSED)
        return passed / len(self.series)


class TrendData(BaseModel):
    """Everything a renderer needs to draw run and per-test trends."""

    model_config = ConfigDict(populate_by_name=True)

    overall: list[RunTrendPoint] = Field(default_factory=list)
    tests: list[TestHistory] = Field(default_factory=list)

    def for_test(self, full_name: str) -> TestHistory | None:
        for history in self.tests:
            if history.full_name == full_name:
                return history
        return None


class TrendAssembler:
    """Joins retained runs on test name.

    Entries are read in the order given (oldest first), so every series comes
    out ordered. Nothing in the input is modified.
    """

    def assemble(self, entries: Sequence[HistoryEntry]) -> TrendData:
        titles = self._index_titles(entries)
        lookups = [self._index_results(entry.results) for entry in entries]

        tests = []
        for full_name, title in titles.items():
            series = [
                self._point(entry, lookup[full_name])
                for entry, lookup in zip(entries, lookups)
                if full_name in lookup
            ]
            if series:
                tests.append(TestHistory(full_name=full_name, title=title, series=series))

        return TrendData(overall=[self._run_point(entry) for entry in entries], tests=tests)

    def _index_titles(self, entries: Sequence[HistoryEntry]) -> dict[str, str]:
        titles: dict[str, str] = {}
        for entry in entries:
            for result in entry.results:
                if result.name and result.name not in titles:
                    titles[result.name] = result.title
        return titles

    def _index_results(self, results: Sequence[TestRecord]) -> dict[str, TestRecord]:
        lookup: dict[str, TestRecord] = {}
        for result in results:
            lookup.setdefault(result.name, result)
        return lookup

    def _point(self, entry: HistoryEntry, result: TestRecord) -> TrendPoint:
        return TrendPoint(
            run_key=entry.run_key,
            status=result.status,
            duration=result.duration,
            timestamp=result.start_time or entry.run.timestamp,
        )

    def _run_point(self, entry: HistoryEntry) -> RunTrendPoint:
        run = entry.run
        return RunTrendPoint(
            run_key=entry.run_key,
            timestamp=run.timestamp,
            duration=run.duration,
            total_tests=run.total_tests,
            passed=run.passed,
            failed=run.failed,
            skipped=run.skipped,
        )


def load_trends(store: HistoryStore) -> TrendData:
    """Assemble trends from whatever ``store`` currently retains."""
    return TrendAssembler().assemble(store.load_window())
