"""Settings for locating reports and sizing the history stores."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pulse_trend.errors import ConfigError


class PulseSettings(BaseSettings):
    """Output locations and retention capacities.

    Loads from ``PULSE_``-prefixed environment variables, e.g.
    ``PULSE_OUTPUT_DIR`` or ``PULSE_HISTORY_MAX_RUNS``. Components never read
    these directly; the pipeline passes the values in.
    """

    output_dir: Path = Field(default=Path("pulse-report"), description="Run output directory")
    report_file_name: str = "playwright-pulse-report.json"
    results_subdir: str = "pulse-results"
    history_subdir: str = "history"
    history_prefix: str = "trend-"
    history_max_runs: int = Field(default=15, ge=1)
    workbook_file_name: str = "trend.xlsx"
    workbook_max_runs: int = Field(default=15, ge=1)

    model_config = SettingsConfigDict(env_prefix="PULSE_", extra="ignore")

    @property
    def report_path(self) -> Path:
        return self.output_dir / self.report_file_name

    @property
    def history_dir(self) -> Path:
        return self.output_dir / self.history_subdir

    @property
    def results_dir(self) -> Path:
        return self.output_dir / self.results_subdir

    @property
    def workbook_path(self) -> Path:
        return self.output_dir / self.workbook_file_name


def resolve_output_dir(custom: str | Path | None, root: str | Path | None = None) -> Path | None:
    """Resolve a user-supplied output directory against the project root.

    Returns None when nothing was supplied. Directories outside ``root`` are
    rejected.
    """
    if custom is None or str(custom) == "":
        return None
    base = Path(root) if root is not None else Path.cwd()
    base = base.resolve()
    resolved = (base / Path(custom).expanduser()).resolve()
    if resolved != base and base not in resolved.parents:
        raise ConfigError(f"Output directory {resolved} must be within the project root {base}")
    return resolved
