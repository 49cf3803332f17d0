"""Workbook-backed trend store built on openpyxl."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from pulse_trend.errors import StoreWriteError
from pulse_trend.models.history import HistoryEntry
from pulse_trend.models.result import TestRecord
from pulse_trend.models.run import RunRecord, RunReport
from pulse_trend.models.timestamps import run_key_from_timestamp
from pulse_trend.storage.base import ArchiveResult, HistoryStore
from pulse_trend.storage.window import RetentionWindow
from pulse_trend.storage.workbook.schema import (
    OVERVIEW_COLUMNS,
    OVERVIEW_SHEET,
    RUN_COLUMNS,
    parse_run_sheet_key,
    run_sheet_name,
)


logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKBOOK_RUNS = 15

_UNREADABLE_WORKBOOK = (
    OSError,
    BadZipFile,
    InvalidFileException,
    SyntaxError,  # malformed part XML (ElementTree or lxml ParseError)
    KeyError,
    ValueError,
    TypeError,
    AttributeError,
)


class WorkbookTrendStore(HistoryStore):
    """One overview sheet with a row per run plus one sheet per retained run.

    The overview rows and the per-run sheets are pruned independently but with
    the same capacity and ordering key, so both always describe the same runs.
    """

    def __init__(self, path: str | Path, max_runs: int = DEFAULT_MAX_WORKBOOK_RUNS) -> None:
        if max_runs < 1:
            raise ValueError(f"max_runs must be at least 1, got {max_runs}")
        self.path = Path(path)
        self.max_runs = max_runs

    def archive(self, report: RunReport) -> ArchiveResult:
        run = report.run
        run_key = run_key_from_timestamp(run.timestamp)
        workbook = self._open_or_create()

        rows, overflow = RetentionWindow.from_items(self.max_runs, self._read_overview(workbook))
        replaced = run_key in rows
        overflow += rows.put(run_key, self._overview_row(run_key, run))
        self._write_sheet(workbook, OVERVIEW_SHEET, OVERVIEW_COLUMNS, rows.values(), index=0)

        run_rows = [self._test_row(test, run) for test in report.results]
        self._write_sheet(workbook, run_sheet_name(run_key), RUN_COLUMNS, run_rows)
        removed_sheets = self._prune_run_sheets(workbook)
        workbook.active = 0

        self._save(workbook)
        logger.info("Trend workbook updated at %s", self.path)

        evicted = sorted({key for key, _ in overflow} | set(removed_sheets))
        if run_key in evicted:
            logger.warning(
                "Run %s is older than the %d retained runs and was pruned immediately",
                run_key,
                self.max_runs,
            )
        return ArchiveResult(run_key=run_key, path=self.path, replaced=replaced, evicted=evicted)

    def run_keys(self) -> list[int]:
        workbook = self._open()
        if workbook is None:
            return []
        return [key for key, _ in self._read_overview(workbook)]

    def sheet_names(self) -> list[str]:
        workbook = self._open()
        return list(workbook.sheetnames) if workbook is not None else []

    def load_window(self) -> list[HistoryEntry]:
        """Join overview rows with their run sheets, oldest first."""
        workbook = self._open()
        if workbook is None:
            return []

        window, _ = RetentionWindow.from_items(self.max_runs, self._read_overview(workbook))
        entries: list[HistoryEntry] = []
        for run_key, row in window.items():
            run = RunRecord(
                id=str(row.get("RUN_REF") or ""),
                timestamp=row.get("TIMESTAMP"),
                total_tests=_as_count(row.get("TOTAL_TESTS")),
                passed=_as_count(row.get("PASSED")),
                failed=_as_count(row.get("FAILED")),
                skipped=_as_count(row.get("SKIPPED")),
                duration=_as_duration(row.get("DURATION")),
            )
            sheet_name = run_sheet_name(run_key)
            if sheet_name not in workbook.sheetnames:
                logger.warning("Trend workbook has no sheet for run %s", run_key)
                results: list[TestRecord] = []
            else:
                results = [
                    self._row_to_test(test_row)
                    for test_row in _sheet_records(workbook[sheet_name])
                    if test_row.get("TEST_NAME")
                ]
            entries.append(HistoryEntry(run_key=run_key, run=run, results=results))
        return entries

    def _open(self) -> Workbook | None:
        if not self.path.exists():
            return None
        try:
            return load_workbook(self.path)
        except _UNREADABLE_WORKBOOK as exc:
            logger.warning("Could not read trend workbook %s: %s", self.path, exc)
            return None

    def _open_or_create(self) -> Workbook:
        workbook = self._open()
        if workbook is not None:
            return workbook
        workbook = Workbook()
        workbook.remove(workbook.active)
        return workbook

    def _read_overview(self, workbook: Workbook) -> list[tuple[int, dict[str, Any]]]:
        if OVERVIEW_SHEET not in workbook.sheetnames:
            return []
        try:
            records = _sheet_records(workbook[OVERVIEW_SHEET], required="RUN_ID")
        except ValueError as exc:
            logger.warning("Could not parse existing '%s' sheet. Starting fresh: %s", OVERVIEW_SHEET, exc)
            return []

        rows: list[tuple[int, dict[str, Any]]] = []
        for record in records:
            run_key = _as_run_key(record.get("RUN_ID"))
            if run_key is None:
                logger.warning("Dropping overview row with invalid RUN_ID %r", record.get("RUN_ID"))
                continue
            record["RUN_ID"] = run_key
            rows.append((run_key, record))
        return rows

    def _overview_row(self, run_key: int, run: RunRecord) -> dict[str, Any]:
        return {
            "RUN_ID": run_key,
            "DURATION": run.duration,
            "TIMESTAMP": run.timestamp.isoformat() if run.timestamp else None,
            "TOTAL_TESTS": run.total_tests,
            "PASSED": run.passed,
            "FAILED": run.failed,
            "SKIPPED": run.skipped,
            "RUN_REF": _clean_text(run.id),
        }

    def _test_row(self, test: TestRecord, run: RunRecord) -> dict[str, Any]:
        started = test.start_time or run.timestamp
        return {
            "TEST_NAME": _clean_text(test.name),
            "DURATION": test.duration,
            "STATUS": test.status.value,
            "TIMESTAMP": started.isoformat() if started else None,
        }

    def _row_to_test(self, row: dict[str, Any]) -> TestRecord:
        return TestRecord(
            name=str(row["TEST_NAME"]),
            status=row.get("STATUS"),
            duration=_as_duration(row.get("DURATION")),
            start_time=row.get("TIMESTAMP"),
        )

    def _write_sheet(
        self,
        workbook: Workbook,
        name: str,
        columns: tuple[str, ...],
        rows: Iterable[dict[str, Any]],
        index: int | None = None,
    ) -> None:
        """Create or replace a sheet, keeping the position of a replaced one."""
        if name in workbook.sheetnames:
            position = workbook.sheetnames.index(name)
            workbook.remove(workbook[name])
            if index is None:
                index = position
        sheet = workbook.create_sheet(name, index)
        sheet.sheet_state = "visible"
        sheet.append(list(columns))
        for row in rows:
            sheet.append([row.get(column) for column in columns])

    def _prune_run_sheets(self, workbook: Workbook) -> list[int]:
        keyed = [
            (key, name)
            for name in workbook.sheetnames
            if name != OVERVIEW_SHEET and (key := parse_run_sheet_key(name)) is not None
        ]
        _, overflow = RetentionWindow.from_items(self.max_runs, keyed)
        for _, name in overflow:
            workbook.remove(workbook[name])
        return [key for key, _ in overflow]

    def _save(self, workbook: Workbook) -> None:
        tmp_path = self.path.with_name(f".{self.path.stem}.tmp{self.path.suffix}")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            workbook.save(tmp_path)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise StoreWriteError(self.path, "save trend workbook", exc) from exc


def _sheet_records(sheet: Worksheet, required: str | None = None) -> list[dict[str, Any]]:
    rows = sheet.iter_rows(values_only=True)
    header = next(rows, None)
    if not header:
        raise ValueError(f"sheet '{sheet.title}' has no header row")
    columns = [str(cell) if cell is not None else "" for cell in header]
    if required is not None and required not in columns:
        raise ValueError(f"sheet '{sheet.title}' has no {required} column")
    records = []
    for values in rows:
        if all(value is None for value in values):
            continue
        records.append(dict(zip(columns, values)))
    return records


def _as_run_key(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _as_count(value: Any) -> int:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0:
        return int(value)
    return 0


def _as_duration(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0:
        return float(value)
    return 0.0


def _clean_text(value: str) -> str:
    return ILLEGAL_CHARACTERS_RE.sub("", value)
