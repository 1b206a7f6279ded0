# Overview: Time helpers; every stored timestamp is a UTC-naive datetime.

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_utc(dt: datetime) -> datetime:
    # Naive values are already UTC by convention
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read an ISO-8601 string into the canonical UTC-naive form.

    Blank input gives None. Offsets (including a trailing "Z") are folded
    into UTC; strings without an offset are taken as UTC already.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return _as_utc(datetime.fromisoformat(text)).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Millisecond ISO-8601 in UTC with a 'Z' suffix, e.g. 2026-01-31T09:30:00.000Z."""
    if dt is None:
        return None
    return _as_utc(dt).strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def to_local(dt: datetime, tz_name: str) -> datetime:
    """Convert a UTC-naive datetime to an aware datetime in the named zone."""
    return _as_utc(dt).astimezone(ZoneInfo(tz_name))


def epoch_millis(dt: Optional[datetime] = None) -> int:
    """Milliseconds since the epoch; used for generated document numbers."""
    return int(_as_utc(dt or utcnow()).timestamp() * 1000)
