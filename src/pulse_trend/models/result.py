"""Test record models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pulse_trend.models.timestamps import parse_timestamp


NAME_SEPARATOR = " > "


class TestStatus(Enum):
    """Outcome of a single test."""

    __test__ = False  # Prevent pytest from collecting this as a test class

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value: object) -> TestStatus:
        if isinstance(value, TestStatus):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN


class TestRecord(BaseModel):
    """Outcome of one test within a run.

    ``name`` is the hierarchical identity (suite path plus title) and is the
    join key across runs. Fields the producer emits beyond the ones declared
    here are kept as-is so a merged report carries the full payload.
    """

    __test__ = False  # Prevent pytest from collecting this as a test class

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    status: TestStatus = TestStatus.UNKNOWN
    duration: float = Field(default=0.0, ge=0)
    worker_id: int | str | None = Field(default=None, alias="workerId")
    id: str | None = None
    retries: int = Field(default=0, ge=0)
    start_time: datetime | None = Field(default=None, alias="startTime")

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> TestStatus:
        return TestStatus.coerce(value)

    @field_validator("duration", mode="before")
    @classmethod
    def _default_duration(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator("retries", mode="before")
    @classmethod
    def _default_retries(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("start_time", mode="before")
    @classmethod
    def _parse_start_time(cls, value: Any) -> datetime | None:
        try:
            return parse_timestamp(value)
        except ValueError:
            # Per-test start times are informational only
            return None

    @property
    def title(self) -> str:
        """Last segment of the hierarchical name."""
        return self.name.split(NAME_SEPARATOR)[-1]
