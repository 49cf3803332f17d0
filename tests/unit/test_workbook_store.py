import logging
import zipfile
from pathlib import Path

import pytest
from openpyxl import Workbook, load_workbook

from pulse_trend.errors import InvalidTimestampError, StoreWriteError
from pulse_trend.models import RunRecord, RunReport
from pulse_trend.storage import WorkbookTrendStore
from pulse_trend.storage.workbook.schema import OVERVIEW_COLUMNS, run_sheet_name


def _run_sheets(path: Path) -> list[str]:
    return [name for name in load_workbook(path).sheetnames if name.startswith("test run ")]


def test_new_workbook_has_overview_and_run_sheet(tmp_path: Path, make_report) -> None:
    store = WorkbookTrendStore(tmp_path / "trend.xlsx")

    result = store.archive(make_report(outcomes={"suite > a": "passed", "suite > b": "failed"}))

    workbook = load_workbook(result.path)
    assert workbook.sheetnames == ["overall", run_sheet_name(result.run_key)]
    overview = list(workbook["overall"].iter_rows(values_only=True))
    assert overview[0] == OVERVIEW_COLUMNS
    assert overview[1][0] == result.run_key
    assert overview[1][3:7] == (2, 1, 1, 0)
    run_rows = list(workbook[run_sheet_name(result.run_key)].iter_rows(values_only=True))
    assert run_rows[0] == ("TEST_NAME", "DURATION", "STATUS", "TIMESTAMP")
    assert [row[0] for row in run_rows[1:]] == ["suite > a", "suite > b"]
    assert [row[2] for row in run_rows[1:]] == ["passed", "failed"]


def test_workbook_keeps_fifteen_rows_and_sheets(tmp_path: Path, make_report) -> None:
    store = WorkbookTrendStore(tmp_path / "trend.xlsx", max_runs=15)
    keys = [store.archive(make_report(offset=offset)).run_key for offset in range(16)]

    assert store.run_keys() == keys[1:]
    assert _run_sheets(store.path) == [run_sheet_name(key) for key in keys[1:]]


def test_workbook_small_capacity_variant(tmp_path: Path, make_report) -> None:
    store = WorkbookTrendStore(tmp_path / "trend.xlsx", max_runs=5)
    results = [store.archive(make_report(offset=offset)) for offset in range(7)]

    assert results[-1].evicted == [results[1].run_key]
    assert store.run_keys() == [r.run_key for r in results[2:]]
    assert len(_run_sheets(store.path)) == 5


def test_workbook_duplicate_key_replaces_row_and_sheet(tmp_path: Path, make_report) -> None:
    store = WorkbookTrendStore(tmp_path / "trend.xlsx")
    store.archive(make_report(offset=0, outcomes={"a": "failed"}, run_id="first"))
    store.archive(make_report(offset=1))

    again = store.archive(make_report(offset=0, outcomes={"a": "passed", "b": "passed"}, run_id="second"))

    assert again.replaced
    assert len(store.run_keys()) == 2
    entries = store.load_window()
    assert entries[0].run.id == "second"
    assert [t.name for t in entries[0].results] == ["a", "b"]
    assert store.sheet_names()[0] == "overall"


def test_workbook_corrupt_file_starts_fresh(tmp_path: Path, make_report, caplog) -> None:
    path = tmp_path / "trend.xlsx"
    path.write_bytes(b"this is not a zip archive")
    store = WorkbookTrendStore(path)

    with caplog.at_level(logging.WARNING):
        result = store.archive(make_report())

    assert store.run_keys() == [result.run_key]
    assert "Could not read trend workbook" in caplog.text


def test_workbook_corrupt_overview_treated_as_empty(tmp_path: Path, make_report, caplog) -> None:
    path = tmp_path / "trend.xlsx"
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "overall"
    sheet.append(["something", "else"])
    sheet.append([1, 2])
    workbook.save(path)
    store = WorkbookTrendStore(path)

    with caplog.at_level(logging.WARNING):
        result = store.archive(make_report())

    assert store.run_keys() == [result.run_key]
    assert "Starting fresh" in caplog.text


def test_workbook_drops_rows_with_invalid_run_id(tmp_path: Path, make_report) -> None:
    path = tmp_path / "trend.xlsx"
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "overall"
    sheet.append(list(OVERVIEW_COLUMNS))
    sheet.append(["not-a-key", 1, None, 1, 1, 0, 0, None])
    workbook.save(path)
    store = WorkbookTrendStore(path)

    result = store.archive(make_report())

    assert store.run_keys() == [result.run_key]


def test_workbook_write_failure_is_fatal(tmp_path: Path, make_report, monkeypatch) -> None:
    store = WorkbookTrendStore(tmp_path / "trend.xlsx")

    def fail_save(self, filename) -> None:
        raise PermissionError("disk is read-only")

    monkeypatch.setattr(Workbook, "save", fail_save)

    with pytest.raises(StoreWriteError) as excinfo:
        store.archive(make_report())

    assert excinfo.value.operation == "save trend workbook"
    assert not store.path.exists()


def test_workbook_rejects_run_without_timestamp(tmp_path: Path) -> None:
    store = WorkbookTrendStore(tmp_path / "trend.xlsx")
    report = RunReport(run=RunRecord(total_tests=0, passed=0, failed=0, skipped=0), results=[])

    with pytest.raises(InvalidTimestampError):
        store.archive(report)


def test_workbook_load_window_reads_back_runs(tmp_path: Path, make_report) -> None:
    store = WorkbookTrendStore(tmp_path / "trend.xlsx")
    report = make_report(offset=3, outcomes={"suite > a": "skipped"}, run_id="run-3", duration=42.5)
    store.archive(report)

    [entry] = store.load_window()

    assert entry.run.id == "run-3"
    assert entry.run.timestamp == report.run.timestamp
    assert entry.run.duration == 42.5
    assert entry.results[0].status.value == "skipped"
    assert entry.results[0].start_time == report.run.timestamp


def test_workbook_missing_run_sheet_yields_empty_results(tmp_path: Path, make_report, caplog) -> None:
    store = WorkbookTrendStore(tmp_path / "trend.xlsx")
    result = store.archive(make_report())
    workbook = load_workbook(store.path)
    workbook.remove(workbook[run_sheet_name(result.run_key)])
    workbook.save(store.path)

    with caplog.at_level(logging.WARNING):
        [entry] = store.load_window()

    assert entry.results == []
    assert "has no sheet" in caplog.text


def test_workbook_with_malformed_sheet_xml_starts_fresh(tmp_path: Path, make_report, caplog) -> None:
    store = WorkbookTrendStore(tmp_path / "trend.xlsx")
    store.archive(make_report(offset=0))
    with zipfile.ZipFile(store.path) as archive:
        parts = {name: archive.read(name) for name in archive.namelist()}
    parts["xl/worksheets/sheet1.xml"] = b"<worksheet><sheetData><row"
    with zipfile.ZipFile(store.path, "w") as archive:
        for name, data in parts.items():
            archive.writestr(name, data)

    with caplog.at_level(logging.WARNING):
        result = store.archive(make_report(offset=1))

    assert store.run_keys() == [result.run_key]
    assert "Could not read trend workbook" in caplog.text
