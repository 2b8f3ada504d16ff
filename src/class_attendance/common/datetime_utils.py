from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Protocol

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date {value!r} (expected YYYY-MM-DD)")


def parse_time(value: str) -> time:
    """Parse HH:MM:SS (or HH:MM) string into time."""
    v = (value or "").strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(v, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"Invalid time {value!r} (expected HH:MM:SS)")


def format_time(value: time) -> str:
    return value.strftime("%H:%M:%S")


def day_of_week(value: date) -> int:
    """Monday=1 ... Sunday=7, the numbering used for time slots."""
    return value.isoweekday()


def start_of_week(value: date) -> date:
    return value - timedelta(days=value.weekday())


def combine_like(on_date: date, at: time, reference: datetime) -> datetime:
    """Combine date and time, borrowing tzinfo from ``reference``.

    Keeps comparisons valid whether the clock is naive or aware.
    """
    return datetime.combine(on_date, at, tzinfo=reference.tzinfo)


class Clock(Protocol):
    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock:
    """Current local time."""

    def now(self) -> datetime:
        return datetime.now()


@dataclass
class FixedClock:
    """Clock frozen at ``current``; tests move it with ``advance``."""

    current: datetime

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current
