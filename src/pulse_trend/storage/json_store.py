"""Directory-backed history store: one JSON snapshot per retained run."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pulse_trend.errors import ReportLoadError, StoreWriteError
from pulse_trend.models.history import HistoryEntry
from pulse_trend.models.run import RunReport, load_report, write_report
from pulse_trend.models.timestamps import run_key_from_timestamp
from pulse_trend.storage.base import ArchiveResult, HistoryStore
from pulse_trend.storage.window import RetentionWindow


logger = logging.getLogger(__name__)

DEFAULT_HISTORY_PREFIX = "trend-"
DEFAULT_MAX_HISTORY_RUNS = 15
HISTORY_SUFFIX = ".json"


class JSONHistoryStore(HistoryStore):
    """Keeps the newest ``max_runs`` run reports as ``<prefix><run_key>.json`` files."""

    def __init__(
        self,
        history_dir: str | Path,
        max_runs: int = DEFAULT_MAX_HISTORY_RUNS,
        prefix: str = DEFAULT_HISTORY_PREFIX,
    ) -> None:
        if max_runs < 1:
            raise ValueError(f"max_runs must be at least 1, got {max_runs}")
        self.history_dir = Path(history_dir)
        self.max_runs = max_runs
        self.prefix = prefix
        self._pattern = re.compile(rf"^{re.escape(prefix)}(-?\d+){re.escape(HISTORY_SUFFIX)}$")

    def path_for(self, run_key: int) -> Path:
        return self.history_dir / f"{self.prefix}{run_key}{HISTORY_SUFFIX}"

    def archive(self, report: RunReport) -> ArchiveResult:
        """Write the run as a new snapshot, then prune the oldest beyond ``max_runs``."""
        run_key = run_key_from_timestamp(report.run.timestamp)
        try:
            self.history_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreWriteError(self.history_dir, "create history directory", exc) from exc

        path = self.path_for(run_key)
        replaced = path.exists()
        write_report(report, path)
        if replaced:
            logger.info("Replaced history snapshot %s", path)
        else:
            logger.info("Archived current run to %s", path)

        evicted = self.prune()
        if run_key in evicted:
            logger.warning(
                "Run %s is older than the %d retained runs and was pruned immediately",
                run_key,
                self.max_runs,
            )
        return ArchiveResult(run_key=run_key, path=path, replaced=replaced, evicted=evicted)

    def prune(self) -> list[int]:
        """Delete the oldest snapshots beyond ``max_runs`` and return their keys.

        Deletion failures are logged and skipped.
        """
        try:
            snapshots = self._scan()
        except OSError as exc:
            logger.warning("Could not list history directory %s: %s", self.history_dir, exc)
            return []

        _, overflow = RetentionWindow.from_items(self.max_runs, snapshots.items())
        if overflow:
            logger.info(
                "Found %d history files. Pruning %d oldest file(s)...",
                len(snapshots),
                len(overflow),
            )

        evicted: list[int] = []
        for run_key, path in overflow:
            try:
                path.unlink()
            except OSError as exc:
                logger.warning("Could not delete old history file %s: %s", path.name, exc)
                continue
            evicted.append(run_key)
        return evicted

    def run_keys(self) -> list[int]:
        try:
            return sorted(self._scan())
        except OSError:
            return []

    def load_window(self) -> list[HistoryEntry]:
        """Read back the retained snapshots, oldest first.

        Unreadable snapshots are skipped with a warning.
        """
        try:
            snapshots = self._scan()
        except FileNotFoundError:
            logger.warning("History directory %s not found", self.history_dir)
            return []
        except OSError as exc:
            logger.warning("Error loading history from %s: %s", self.history_dir, exc)
            return []

        window, _ = RetentionWindow.from_items(self.max_runs, snapshots.items())
        entries: list[HistoryEntry] = []
        for run_key, path in window.items():
            try:
                report = load_report(path)
            except ReportLoadError as exc:
                logger.warning("Skipping history file %s: %s", path.name, exc.cause)
                continue
            entries.append(HistoryEntry(run_key=run_key, run=report.run, results=report.results))
        return entries

    def _scan(self) -> dict[int, Path]:
        snapshots: dict[int, Path] = {}
        for child in self.history_dir.iterdir():
            match = self._pattern.match(child.name)
            if match is None or not child.is_file():
                continue
            snapshots[int(match.group(1))] = child
        return snapshots
