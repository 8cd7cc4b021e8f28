from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Optional

from .validation import ValidationError

_MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


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


def parse_month_key(value: Optional[str]) -> date:
    """
    "YYYY-MM" -> first day of that month.

    Raises ValidationError for anything else, including blank input.
    """
    if value is None or not str(value).strip():
        raise ValidationError("month is required (YYYY-MM)")
    m = _MONTH_KEY_RE.match(str(value).strip())
    if not m:
        raise ValidationError(f"month must be in YYYY-MM format, got {value!r}")
    year, month = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12:
        raise ValidationError(f"month must be in YYYY-MM format, got {value!r}")
    return date(year, month, 1)


def month_key(month: date) -> str:
    return f"{month.year:04d}-{month.month:02d}"


def month_start(value: date | datetime) -> date:
    return date(value.year, value.month, 1)


def next_month_start(month: date) -> date:
    if month.month == 12:
        return date(month.year + 1, 1, 1)
    return date(month.year, month.month + 1, 1)


def month_bounds(month: date) -> tuple[datetime, datetime]:
    """Datetime range covering the month: inclusive start, exclusive end."""
    start = month_start(month)
    end = next_month_start(start)
    return (
        datetime(start.year, start.month, 1),
        datetime(end.year, end.month, 1),
    )
