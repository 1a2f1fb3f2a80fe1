"""Date formatting for VICIdial `datetime_start`/`datetime_end` params."""

from __future__ import annotations

import re
from datetime import datetime, timedelta

_DATE_TIME = re.compile(r"^(\d{4}-\d{2}-\d{2})[ T+](\d{2}:\d{2}(?::\d{2})?)")


def format_vici_datetime(value: datetime) -> str:
    """`YYYY-MM-DD+HH:MM:SS`, the form the stats exports expect."""
    return value.strftime("%Y-%m-%d+%H:%M:%S")


def fix_date_format(value: str) -> str:
    """Normalize a user-supplied date/datetime string for VICIdial.

    ``2024-05-01 10:00``, ``2024-05-01T10:00:00`` and ``2024-05-01+10:00:00``
    all become ``2024-05-01+10:00:00``; a bare date is returned unchanged.
    """
    text = str(value).strip()
    match = _DATE_TIME.match(text)
    if not match:
        return text
    date_part, time_part = match.groups()
    if time_part.count(":") == 1:
        time_part += ":00"
    return f"{date_part}+{time_part}"


def lookback_window(days: int, now: datetime | None = None) -> tuple[str, str]:
    """(start, end) strings covering the last ``days`` days."""
    end = now or datetime.now()
    start = end - timedelta(days=days)
    return format_vici_datetime(start), format_vici_datetime(end)

