"""Timestamp coercion and the run key derived from it."""

from __future__ import annotations

import math
from datetime import UTC, datetime

from pulse_trend.errors import InvalidTimestampError


def parse_timestamp(value: object) -> datetime | None:
    """Coerce an ISO-8601 string or epoch-milliseconds number to an aware datetime.

    Naive values are interpreted as UTC. ``None`` and empty strings yield ``None``.
    Raises ``ValueError`` for anything else that cannot be interpreted.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"timestamp out of range: {value!r}") from exc
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.lstrip("-").isdigit():
            return parse_timestamp(int(text))
        parsed = datetime.fromisoformat(text)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    raise ValueError(f"not a timestamp: {value!r}")


def run_key_from_timestamp(timestamp: datetime | None) -> int:
    """Seconds since the epoch, floored.

    Two runs started within the same second share a key; the later archive
    replaces the earlier one.
    """
    if timestamp is None:
        raise InvalidTimestampError(timestamp)
    seconds = timestamp.timestamp()
    if not math.isfinite(seconds):
        raise InvalidTimestampError(timestamp, "not a finite point in time")
    return math.floor(seconds)
