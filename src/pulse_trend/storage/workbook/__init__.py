"""Spreadsheet-backed trend store."""

from pulse_trend.storage.workbook.store import WorkbookTrendStore


__all__ = ["WorkbookTrendStore"]
