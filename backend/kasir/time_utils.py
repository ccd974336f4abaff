from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


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

    Microseconds are kept: settlement cutoffs are compared with strict
    inequality and must round-trip exactly.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc)
    return dt_utc.isoformat().replace("+00:00", "Z")


def get_zone(name: Optional[str]) -> ZoneInfo:
    """Resolve an IANA timezone name, falling back to UTC for unknown names."""
    if not name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def start_of_local_day(now: datetime, tz_name: Optional[str]) -> datetime:
    """
    Midnight of the calendar day containing `now` in `tz_name`,
    returned as a UTC-naive datetime.
    """
    zone = get_zone(tz_name)
    local = now.replace(tzinfo=timezone.utc).astimezone(zone)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_local_month(now: datetime, tz_name: Optional[str], months_back: int = 0) -> datetime:
    """First instant of the local calendar month, `months_back` months before `now`'s month."""
    zone = get_zone(tz_name)
    local = now.replace(tzinfo=timezone.utc).astimezone(zone)
    year, month = local.year, local.month - months_back
    while month <= 0:
        month += 12
        year -= 1
    first = datetime(year, month, 1, tzinfo=zone)
    return first.astimezone(timezone.utc).replace(tzinfo=None)


def shift_local_days(instant: datetime, tz_name: Optional[str], days: int) -> datetime:
    """Move a UTC-naive instant by whole local calendar days (DST-safe)."""
    zone = get_zone(tz_name)
    local = instant.replace(tzinfo=timezone.utc).astimezone(zone).replace(tzinfo=None)
    shifted = (local + timedelta(days=days)).replace(tzinfo=zone)
    return shifted.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_same_day_last_month(now: datetime, tz_name: Optional[str]) -> datetime:
    """Local midnight one calendar month before `now`, clamped to the month's last day."""
    zone = get_zone(tz_name)
    local = now.replace(tzinfo=timezone.utc).astimezone(zone)
    year, month = (local.year, local.month - 1) if local.month > 1 else (local.year - 1, 12)
    day = min(local.day, calendar.monthrange(year, month)[1])
    start = datetime(year, month, day, tzinfo=zone)
    return start.astimezone(timezone.utc).replace(tzinfo=None)
