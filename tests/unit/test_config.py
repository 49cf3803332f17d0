from pathlib import Path

import pytest

from pulse_trend.config import PulseSettings, resolve_output_dir
from pulse_trend.errors import ConfigError


def test_settings_defaults() -> None:
    settings = PulseSettings()

    assert settings.output_dir == Path("pulse-report")
    assert settings.report_path == Path("pulse-report") / "playwright-pulse-report.json"
    assert settings.history_dir == Path("pulse-report") / "history"
    assert settings.workbook_path == Path("pulse-report") / "trend.xlsx"
    assert settings.history_max_runs == 15
    assert settings.workbook_max_runs == 15


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("PULSE_OUTPUT_DIR", "out")
    monkeypatch.setenv("PULSE_WORKBOOK_MAX_RUNS", "5")

    settings = PulseSettings()

    assert settings.output_dir == Path("out")
    assert settings.workbook_max_runs == 5


def test_settings_reject_zero_capacity() -> None:
    with pytest.raises(ValueError):
        PulseSettings(history_max_runs=0)


def test_resolve_output_dir_inside_root(tmp_path: Path) -> None:
    assert resolve_output_dir("reports/pulse", root=tmp_path) == (tmp_path / "reports" / "pulse").resolve()
    assert resolve_output_dir(None, root=tmp_path) is None


def test_resolve_output_dir_outside_root(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        resolve_output_dir("../elsewhere", root=tmp_path / "project")
