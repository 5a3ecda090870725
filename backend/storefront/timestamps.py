# Overview: Timestamp helpers shared by models, controllers and the local backend; all datetimes are UTC-naive.

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Dashboard-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_iso_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Wire form used by the remote store: second precision, trailing 'Z'.
    Naive values are taken as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def stamp() -> str:
    """Current time in wire form (created_at / updated_at on writes)."""
    return to_iso_z(utcnow())


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Read a stored timestamp back into a UTC-naive datetime.

    Accepts datetimes (the local backend hands these out) and ISO-8601
    strings with 'Z', an offset, or no zone at all. Blank -> None.
    Raises ValueError for unreadable strings, TypeError for other types.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif not isinstance(value, str):
        raise TypeError(f"not a timestamp: {value!r}")
    else:
        s = value.strip()
        if not s:
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_day(value: Optional[str]) -> Optional[date]:
    """Calendar day in "YYYY-MM-DD" form (customer.last_order). Blank -> None."""
    if value is None or not value.strip():
        return None
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def month_label(value: Union[str, datetime, None]) -> Optional[str]:
    """Short month name of a timestamp ("Jan"), or None when it can't be read."""
    try:
        dt = parse_timestamp(value)
    except (TypeError, ValueError):
        return None
    return dt.strftime("%b") if dt is not None else None
