"""Bounded history stores for completed runs."""

from pulse_trend.storage.base import ArchiveResult, HistoryStore
from pulse_trend.storage.json_store import JSONHistoryStore
from pulse_trend.storage.window import RetentionWindow
from pulse_trend.storage.workbook import WorkbookTrendStore


__all__ = ["ArchiveResult", "HistoryStore", "JSONHistoryStore", "RetentionWindow", "WorkbookTrendStore"]
