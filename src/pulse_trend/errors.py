"""Exception hierarchy for run aggregation and trend history."""

from __future__ import annotations

from pathlib import Path


class PulseError(Exception):
    """Base class for all pulse-trend errors."""


class ConfigError(PulseError):
    """Invalid configuration value."""


class NoShardResultsError(PulseError):
    """No valid shard result file was found to merge."""

    def __init__(self, searched: list[Path] | None = None) -> None:
        self.searched = list(searched or [])
        detail = f" ({len(self.searched)} candidate file(s) rejected)" if self.searched else ""
        super().__init__(f"No valid shard results to merge{detail}")


class InvalidTimestampError(PulseError):
    """Run timestamp is missing or cannot be used as a history key."""

    def __init__(self, value: object, reason: str = "missing or unparseable") -> None:
        self.value = value
        super().__init__(f"Invalid run timestamp {value!r}: {reason}")


class ReportLoadError(PulseError):
    """A run report could not be read or failed validation."""

    def __init__(self, path: Path, cause: str) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Could not load report {self.path}: {cause}")


class StoreWriteError(PulseError):
    """Persisting a history artifact failed."""

    def __init__(self, path: Path, operation: str, cause: BaseException) -> None:
        self.path = Path(path)
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed for {self.path}: {cause}")
