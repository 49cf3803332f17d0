"""Sheet layout for the trend workbook."""

import re


OVERVIEW_SHEET = "overall"
RUN_SHEET_PREFIX = "test run "

OVERVIEW_COLUMNS = (
    "RUN_ID",
    "DURATION",
    "TIMESTAMP",
    "TOTAL_TESTS",
    "PASSED",
    "FAILED",
    "SKIPPED",
    "RUN_REF",
)

RUN_COLUMNS = (
    "TEST_NAME",
    "DURATION",
    "STATUS",
    "TIMESTAMP",
)

_RUN_SHEET_RE = re.compile(rf"^{re.escape(RUN_SHEET_PREFIX)}(-?\d+)$", re.IGNORECASE)


def run_sheet_name(run_key: int) -> str:
    return f"{RUN_SHEET_PREFIX}{run_key}"


def parse_run_sheet_key(sheet_name: str) -> int | None:
    """Run key embedded in a per-run sheet name, or None for other sheets."""
    match = _RUN_SHEET_RE.match(sheet_name)
    return int(match.group(1)) if match else None
