"""Run, test and history data models."""

from pulse_trend.models.history import HistoryEntry
from pulse_trend.models.result import TestRecord, TestStatus
from pulse_trend.models.run import ReportMetadata, RunRecord, RunReport, load_report, write_report
from pulse_trend.models.timestamps import parse_timestamp, run_key_from_timestamp


__all__ = [
    "HistoryEntry",
    "ReportMetadata",
    "RunRecord",
    "RunReport",
    "TestRecord",
    "TestStatus",
    "load_report",
    "parse_timestamp",
    "run_key_from_timestamp",
    "write_report",
]
