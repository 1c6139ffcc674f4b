from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def day_bounds(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    """
    Turn an inclusive calendar-day range into datetime bounds.

    The end bound is the last microsecond of the end day, so filtering with
    `created_at <= end` keeps everything recorded on that day.
    """
    lower = datetime.combine(start, time.min) if start else None
    upper = datetime.combine(end, time.max) if end else None
    return lower, upper


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
