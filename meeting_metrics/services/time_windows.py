# meeting_metrics/services/time_windows.py
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

WEEK_WINDOW_DAYS = 7

_MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True)
class TimeWindow:
    """
    Half-open UTC interval [start, end).

    Every aggregation query in this service filters with
    `column >= window.start AND column < window.end`.
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError("window end must be greater than or equal to window start")

    def contains(self, instant: datetime) -> bool:
        return self.start <= to_utc(instant) < self.end


def to_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC. Naive values are assumed to be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _zone(tz_name: str | None) -> ZoneInfo:
    return ZoneInfo(tz_name or "UTC")


def month_key(now: datetime, tz_name: str | None = None) -> str:
    """
    Calendar-month identifier of `now` in the reporting time zone,
    e.g. "2025-03".
    """
    local = to_utc(now).astimezone(_zone(tz_name))
    return f"{local.year:04d}-{local.month:02d}"


def month_window(now: datetime, tz_name: str | None = None) -> TimeWindow:
    """
    [first instant of the month containing `now`, first instant of the next
    month), month boundaries taken in the reporting time zone and returned in
    UTC.
    """
    local = to_utc(now).astimezone(_zone(tz_name))
    return _window_for_month(local.year, local.month, _zone(tz_name))


def month_window_for_key(key: str, tz_name: str | None = None) -> TimeWindow:
    year, month = parse_month_key(key)
    return _window_for_month(year, month, _zone(tz_name))


def parse_month_key(key: str) -> tuple[int, int]:
    """
    Parse "YYYY-MM" into (year, month). Raises ValueError on anything else.
    """
    match = _MONTH_KEY_RE.match(key or "")
    if match is None:
        raise ValueError(f"Invalid month key {key!r}; expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month key {key!r}; month must be 01-12")
    return year, month


def trailing_week_window(now: datetime, days: int = WEEK_WINDOW_DAYS) -> TimeWindow:
    """
    The `days`-long window ending at `now` (exclusive).
    """
    end = to_utc(now)
    return TimeWindow(start=end - timedelta(days=days), end=end)


def _window_for_month(year: int, month: int, zone: ZoneInfo) -> TimeWindow:
    start_local = datetime(year, month, 1, tzinfo=zone)
    if month == 12:
        end_local = datetime(year + 1, 1, 1, tzinfo=zone)
    else:
        end_local = datetime(year, month + 1, 1, tzinfo=zone)
    return TimeWindow(
        start=start_local.astimezone(timezone.utc),
        end=end_local.astimezone(timezone.utc),
    )
