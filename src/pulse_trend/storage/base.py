"""Abstract base class for bounded history stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from pulse_trend.models.history import HistoryEntry
from pulse_trend.models.run import RunReport


@dataclass
class ArchiveResult:
    """Outcome of archiving one run into a store."""

    run_key: int
    path: Path
    replaced: bool = False
    evicted: list[int] = field(default_factory=list)

    @property
    def retained(self) -> bool:
        """False when the archived run was itself older than everything kept."""
        return self.run_key not in self.evicted


class HistoryStore(ABC):
    """Abstract retention store for completed runs."""

    max_runs: int

    @abstractmethod
    def archive(self, report: RunReport) -> ArchiveResult:
        """Add a run to the store and evict the oldest runs beyond capacity."""

    @abstractmethod
    def run_keys(self) -> list[int]:
        """Retained run keys, oldest first."""

    @abstractmethod
    def load_window(self) -> list[HistoryEntry]:
        """Retained runs, oldest first."""
