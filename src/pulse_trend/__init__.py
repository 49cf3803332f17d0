from pathlib import Path

from dotenv import load_dotenv

from .config import PulseSettings
from .interface.cli import CLIApplication
from .merging import ShardMerger
from .models import HistoryEntry, RunRecord, RunReport, TestRecord, TestStatus, load_report
from .pipeline import finalize_run, merge_run
from .storage import JSONHistoryStore, RetentionWindow, WorkbookTrendStore
from .trends import TrendAssembler, load_trends
from .version import __version__


__all__ = [
    "CLIApplication",
    "HistoryEntry",
    "JSONHistoryStore",
    "PulseSettings",
    "RetentionWindow",
    "RunRecord",
    "RunReport",
    "ShardMerger",
    "TestRecord",
    "TestStatus",
    "TrendAssembler",
    "WorkbookTrendStore",
    "__version__",
    "finalize_run",
    "load_report",
    "load_trends",
    "merge_run",
]


def main() -> int:
    load_dotenv(Path.cwd() / ".env")

    return CLIApplication().run()
