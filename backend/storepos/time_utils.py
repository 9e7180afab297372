"""
Time handling.

All timestamps are stored UTC-naive and serialized with a trailing 'Z'.
Calendar days (sale history filters, dashboard buckets) are UTC days.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 string into a UTC-naive datetime.

    - None / "" -> None
    - naive values ("YYYY-MM-DD", "YYYY-MM-DDTHH:MM") are taken as UTC
    - "...Z" and "...+HH:MM" are converted to UTC

    Raises ValueError on anything else.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse "YYYY-MM-DD" (a full datetime is accepted and truncated)."""
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    if len(s) == 10:
        return date.fromisoformat(s)
    dt = parse_iso_datetime(s)
    return dt.date() if dt else None


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def day_window(start: Optional[date], end: Optional[date]) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Half-open datetime bounds [lower, upper) covering the inclusive day range.
    Either side may be None (unbounded).
    """
    lower = start_of_day(start) if start else None
    upper = start_of_day(end + timedelta(days=1)) if end else None
    return lower, upper


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with trailing 'Z', truncated to seconds. Naive values are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
