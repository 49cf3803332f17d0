"""Locating shard result files and housekeeping around them."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path


logger = logging.getLogger(__name__)

DEFAULT_REPORT_FILE = "playwright-pulse-report.json"
ATTACHMENTS_DIR = "attachments"
SNAPSHOT_PREFIX = "playwright-pulse-report-"
WORKER_RESULTS_PREFIX = ".pulse-shard-results-"


def shard_directories(output_dir: str | Path, exclude: Iterable[str] = ()) -> list[Path]:
    """Immediate subdirectories of ``output_dir`` that may hold a shard report.

    The attachments directory and any name in ``exclude`` are skipped.
    """
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        return []
    skipped = {ATTACHMENTS_DIR, *exclude}
    return sorted(
        child for child in output_dir.iterdir() if child.is_dir() and child.name not in skipped
    )


def discover_shard_reports(
    output_dir: str | Path,
    report_file_name: str = DEFAULT_REPORT_FILE,
    exclude: Iterable[str] = (),
) -> list[Path]:
    """One ``<shard>/<report_file_name>`` per shard directory, sorted by path."""
    reports = []
    for shard_dir in shard_directories(output_dir, exclude):
        candidate = shard_dir / report_file_name
        if candidate.is_file():
            reports.append(candidate)
        else:
            logger.warning("No %s found in %s", report_file_name, shard_dir.name)
    return reports


def discover_result_snapshots(
    results_dir: str | Path, prefix: str = SNAPSHOT_PREFIX
) -> list[Path]:
    """Report snapshots accumulated across runs that were not reset."""
    results_dir = Path(results_dir)
    if not results_dir.is_dir():
        return []
    return sorted(results_dir.glob(f"{prefix}*.json"))


def discover_worker_result_files(
    output_dir: str | Path, prefix: str = WORKER_RESULTS_PREFIX
) -> list[Path]:
    """Temporary per-worker result lists written next to the report."""
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        return []
    return sorted(path for path in output_dir.glob(f"{prefix}*.json") if path.is_file())


def merge_attachments(shard_dirs: list[Path], output_dir: str | Path) -> int:
    """Copy every shard's attachments tree into ``<output_dir>/attachments``.

    Returns the number of shards whose attachments were copied.
    """
    target = Path(output_dir) / ATTACHMENTS_DIR
    copied = 0
    for shard_dir in shard_dirs:
        source = Path(shard_dir) / ATTACHMENTS_DIR
        if not source.is_dir():
            continue
        try:
            shutil.copytree(source, target, dirs_exist_ok=True)
        except (OSError, shutil.Error) as exc:
            logger.warning("Failed to copy attachments from %s: %s", Path(shard_dir).name, exc)
            continue
        copied += 1
    return copied


def cleanup_shard_directories(paths: list[Path]) -> list[Path]:
    """Remove merged shard directories or files; returns what could not be removed."""
    remaining = []
    for path in paths:
        try:
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete %s: %s", path.name, exc)
            remaining.append(path)
    return remaining
