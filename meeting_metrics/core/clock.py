# meeting_metrics/core/clock.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """
    Source of "now" for everything that derives a time window.

    Services never call the system clock directly; they receive a Clock (or
    an explicit `now`) so tests can pin month and week boundaries.
    """

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock, always timezone-aware UTC."""

    def now(self) -> datetime:
        return datetime.now(tz=timezone.utc)


@dataclass
class FixedClock:
    """
    Clock frozen at a given instant. Naive instants are treated as UTC.
    """

    instant: datetime

    def __post_init__(self) -> None:
        if self.instant.tzinfo is None:
            self.instant = self.instant.replace(tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.instant

    def advance(self, **kwargs: float) -> datetime:
        self.instant = self.instant + timedelta(**kwargs)
        return self.instant


_system_clock = SystemClock()


def get_clock() -> Clock:
    """
    FastAPI dependency returning the process clock.

    Override with `app.dependency_overrides[get_clock]` to freeze time.
    """
    return _system_clock
