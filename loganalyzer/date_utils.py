"""Timestamp helpers for framework log lines."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

_FALLBACK_FORMATS = (
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S.%f",
    "%Y/%m/%d %H:%M:%S",
)


def _parse_datetime_token(token: str) -> datetime | None:
    cleaned = token.strip()
    if not cleaned:
        return None
    try:
        return datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
    return None


def timestamp_to_ms(value: Any) -> float | None:
    """Convert a log timestamp into epoch milliseconds.

    Naive timestamps are read as UTC; callers only ever subtract two values
    from the same log, so the zone does not matter. Returns None when the
    value cannot be parsed.
    """
    if not isinstance(value, str):
        return None
    parsed = _parse_datetime_token(value)
    if parsed is None:
        return None
    dt = parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return dt.timestamp() * 1000.0


def duration_ms(start: Any, end: Any) -> int | None:
    """Return end - start in whole milliseconds, or None if either side is unparseable."""
    start_ms = timestamp_to_ms(start)
    end_ms = timestamp_to_ms(end)
    if start_ms is None or end_ms is None:
        return None
    return int(round(end_ms - start_ms))
