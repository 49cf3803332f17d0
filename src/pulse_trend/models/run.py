"""Run-level models and the canonical report artifact."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pulse_trend.errors import ReportLoadError, StoreWriteError
from pulse_trend.models.result import TestRecord, TestStatus
from pulse_trend.models.timestamps import parse_timestamp, run_key_from_timestamp


class RunRecord(BaseModel):
    """Aggregate summary of one test execution.

    The counters are expected to satisfy ``total_tests >= passed + failed + skipped``
    but producers are not always that strict, so the relation is never enforced.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = ""
    timestamp: datetime | None = None
    total_tests: int = Field(ge=0, alias="totalTests")
    passed: int = Field(ge=0)
    failed: int = Field(ge=0)
    skipped: int = Field(ge=0)
    duration: float = Field(default=0.0, ge=0)
    environment: dict[str, Any] | None = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> datetime | None:
        # An unusable timestamp leaves the run unkeyed; archiving rejects it later
        try:
            return parse_timestamp(value)
        except ValueError:
            return None

    @field_validator("duration", mode="before")
    @classmethod
    def _default_duration(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @property
    def run_key(self) -> int:
        return run_key_from_timestamp(self.timestamp)

    @classmethod
    def from_results(
        cls,
        results: list[TestRecord],
        *,
        run_id: str,
        timestamp: datetime | None,
        duration: float = 0.0,
        environment: dict[str, Any] | None = None,
    ) -> RunRecord:
        """Build a run whose counters are derived from test statuses."""
        return cls(
            id=run_id,
            timestamp=timestamp,
            total_tests=len(results),
            passed=sum(1 for r in results if r.status is TestStatus.PASSED),
            failed=sum(1 for r in results if r.status is TestStatus.FAILED),
            skipped=sum(1 for r in results if r.status is TestStatus.SKIPPED),
            duration=duration,
            environment=environment,
        )


class ReportMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), alias="generatedAt"
    )

    @field_validator("generated_at", mode="before")
    @classmethod
    def _parse_generated_at(cls, value: Any) -> datetime:
        return parse_timestamp(value) or datetime.now(UTC)


class RunReport(BaseModel):
    """A run record together with its test records.

    This is both the shape each shard writes and the canonical merged report.
    """

    model_config = ConfigDict(populate_by_name=True)

    run: RunRecord
    results: list[TestRecord]
    metadata: ReportMetadata = Field(default_factory=ReportMetadata)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


def load_report(path: str | Path) -> RunReport:
    """Read and validate a report file."""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ReportLoadError(path, exc.strerror or str(exc)) from exc
    if not content.strip():
        raise ReportLoadError(path, "file is empty")
    try:
        return RunReport.model_validate(json.loads(content))
    except json.JSONDecodeError as exc:
        raise ReportLoadError(path, f"invalid JSON: {exc}") from exc
    except ValidationError as exc:
        raise ReportLoadError(path, f"invalid structure: {exc.error_count()} error(s)") from exc


def write_report(report: RunReport, path: str | Path) -> Path:
    """Serialize a report, overwriting any existing file."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(report.to_json(), encoding="utf-8")
    except OSError as exc:
        raise StoreWriteError(path, "write report", exc) from exc
    return path
