"""History entries kept by the retention stores."""

from __future__ import annotations

from dataclasses import dataclass, field

from pulse_trend.models.result import TestRecord
from pulse_trend.models.run import ReportMetadata, RunRecord, RunReport
from pulse_trend.models.timestamps import run_key_from_timestamp


@dataclass
class HistoryEntry:
    """One retained run in a history store."""

    run_key: int
    run: RunRecord
    results: list[TestRecord] = field(default_factory=list)

    @classmethod
    def from_report(cls, report: RunReport) -> HistoryEntry:
        return cls(
            run_key=run_key_from_timestamp(report.run.timestamp),
            run=report.run,
            results=list(report.results),
        )

    def to_report(self) -> RunReport:
        return RunReport(run=self.run, results=list(self.results), metadata=ReportMetadata())
