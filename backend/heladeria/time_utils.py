# Overview: Clock and ISO-8601 helpers; every stored datetime is UTC without tzinfo.

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    """Current UTC calendar day (the day reports and CSV names use)."""
    return utcnow().date()


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read a timestamp coming from config or a client.

    "" and None give None. A bare "YYYY-MM-DD" is that day at 00:00. Offsets
    (including a trailing Z, as written by to_utc_z) are folded into UTC.
    """
    if not value or not value.strip():
        return None

    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second-precision "YYYY-MM-DDTHH:MM:SSZ"; the format the sync server stores."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"


def day_range(first: date, last: date) -> tuple[datetime, datetime]:
    """
    Half-open [first 00:00, last+1 00:00) covering whole days.

    Filtering created_at with it selects the same rows as comparing the
    YYYY-MM-DD prefix inclusively on both ends.
    """
    return (
        datetime.combine(first, time.min),
        datetime.combine(last + timedelta(days=1), time.min),
    )
