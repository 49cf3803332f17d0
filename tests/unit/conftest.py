import json
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest

from pulse_trend.models import RunRecord, RunReport, TestRecord, TestStatus


BASE_TIME = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)


def _timestamp(seconds: int) -> datetime:
    return datetime.fromtimestamp(BASE_TIME.timestamp() + seconds, tz=UTC)


@pytest.fixture
def make_report() -> Callable[..., RunReport]:
    """Build a run report whose counters match its results.

    ``outcomes`` maps test names to statuses; the run timestamp is
    ``BASE_TIME`` shifted by ``offset`` whole seconds.
    """

    def factory(
        offset: int = 0,
        outcomes: dict[str, str] | None = None,
        run_id: str = "run-1",
        duration: float = 1000.0,
    ) -> RunReport:
        outcomes = outcomes if outcomes is not None else {"suite > login": "passed"}
        results = [
            TestRecord(name=name, status=TestStatus.coerce(status), duration=10.0 * (index + 1))
            for index, (name, status) in enumerate(outcomes.items())
        ]
        run = RunRecord.from_results(
            results, run_id=run_id, timestamp=_timestamp(offset), duration=duration
        )
        return RunReport(run=run, results=results)

    return factory


@pytest.fixture
def write_shard(tmp_path: Path) -> Callable[..., Path]:
    """Write a raw shard payload to ``<tmp>/<shard>/playwright-pulse-report.json``."""

    def writer(shard: str, payload: dict | str, root: Path | None = None) -> Path:
        shard_dir = (root or tmp_path) / shard
        shard_dir.mkdir(parents=True, exist_ok=True)
        path = shard_dir / "playwright-pulse-report.json"
        path.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
        return path

    return writer


def shard_payload(
    total: int,
    passed: int,
    failed: int,
    skipped: int,
    duration: float,
    timestamp: str,
    names: list[str] | None = None,
) -> dict:
    """Raw shard report as the reporter writes it."""
    names = names if names is not None else [f"shard test {i}" for i in range(total)]
    return {
        "run": {
            "id": "shard-run",
            "timestamp": timestamp,
            "totalTests": total,
            "passed": passed,
            "failed": failed,
            "skipped": skipped,
            "duration": duration,
        },
        "results": [{"name": name, "status": "passed", "duration": 1} for name in names],
        "metadata": {"generatedAt": timestamp},
    }


@pytest.fixture
def shard_payload_factory() -> Callable[..., dict]:
    return shard_payload
