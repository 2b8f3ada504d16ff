"""Pure summary functions over attendance records.

Every function accepts records carrying a ``.status`` attribute
(``AttendanceRecord``, ``AttendanceHistoryRow``) or bare status values, and
never touches storage or the clock.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..core.constants import DEFAULT_WARNING_THRESHOLD, TREND_CHANGE_THRESHOLD
from ..core.enums import AttendanceStatus, RiskLevel, TrendDirection


@dataclass(frozen=True)
class Trend:
    direction: TrendDirection
    change: int
    first_half_rate: Optional[int] = None
    second_half_rate: Optional[int] = None


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; rates round .5 upwards.
    return int(math.floor(value + 0.5))


def _status(item: Any) -> AttendanceStatus:
    raw = getattr(item, "status", item)
    return raw if isinstance(raw, AttendanceStatus) else AttendanceStatus(raw)


def _statuses(records: Iterable[Any]) -> list[AttendanceStatus]:
    return [_status(r) for r in records or ()]


def _percent(part: int, total: int) -> int:
    if total == 0:
        return 0
    return round_half_up(part * 100 / total)


def status_counts(records: Iterable[Any]) -> dict[str, int]:
    counter = Counter(_statuses(records))
    counts = {s.value: counter.get(s, 0) for s in AttendanceStatus}
    counts["total"] = sum(counter.values())
    return counts


def attendance_rate(records: Iterable[Any]) -> int:
    """Percentage of present + late over all records; 0 when empty."""
    statuses = _statuses(records)
    return _percent(sum(1 for s in statuses if s.attended), len(statuses))


def late_rate(records: Iterable[Any]) -> int:
    statuses = _statuses(records)
    return _percent(sum(1 for s in statuses if s == AttendanceStatus.LATE), len(statuses))


def trend(records: Sequence[Any]) -> Trend:
    """Compare the attendance rate of the older half with the newer half.

    ``records`` must be oldest first. With an odd count the newer half
    gets the extra record.
    """
    statuses = _statuses(records)
    if len(statuses) < 2:
        return Trend(direction=TrendDirection.INSUFFICIENT_DATA, change=0)

    midpoint = len(statuses) // 2
    first = attendance_rate(statuses[:midpoint])
    second = attendance_rate(statuses[midpoint:])
    change = second - first

    if change > TREND_CHANGE_THRESHOLD:
        direction = TrendDirection.IMPROVING
    elif change < -TREND_CHANGE_THRESHOLD:
        direction = TrendDirection.DECLINING
    else:
        direction = TrendDirection.STABLE

    return Trend(direction=direction, change=change, first_half_rate=first, second_half_rate=second)


def consecutive_absences(records: Iterable[Any]) -> int:
    """Absences in a row counted from the newest record (``records`` newest first)."""
    count = 0
    for s in _statuses(records):
        if s != AttendanceStatus.ABSENT:
            break
        count += 1
    return count


def risk_level(rate: float, consecutive: int) -> RiskLevel:
    if consecutive >= 5 or rate < 50:
        return RiskLevel.CRITICAL
    if consecutive >= 3 or rate < 70:
        return RiskLevel.HIGH
    if consecutive >= 2 or rate < 80:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def most_common_status(records: Iterable[Any]) -> Optional[AttendanceStatus]:
    """Mode of the statuses; on a tie the status seen first wins."""
    counter = Counter(_statuses(records))
    if not counter:
        return None
    return counter.most_common(1)[0][0]


def group_by_status(records: Iterable[Any]) -> dict[AttendanceStatus, list[Any]]:
    groups: dict[AttendanceStatus, list[Any]] = {s: [] for s in AttendanceStatus}
    for r in records or ():
        groups[_status(r)].append(r)
    return groups


def needs_attendance_warning(rate: float, threshold: float = DEFAULT_WARNING_THRESHOLD) -> bool:
    return rate < threshold


def summary_text(counts: Mapping[str, int]) -> str:
    present = int(counts.get("present", 0))
    absent = int(counts.get("absent", 0))
    late = int(counts.get("late", 0))
    excused = int(counts.get("excused", 0))
    rate = _percent(present + late, present + absent + late + excused)
    return (
        f"Attendance rate: {rate}%. "
        f"Present: {present}, Absent: {absent}, Late: {late}, Excused: {excused}"
    )


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def time_difference_label(check_in: datetime, scheduled: datetime) -> str:
    minutes = round_half_up((check_in - scheduled).total_seconds() / 60)
    if minutes == 0:
        return "on time"
    if minutes > 0:
        return f"{_plural(minutes, 'minute')} late"
    return f"{_plural(-minutes, 'minute')} early"


def session_duration_minutes(started_at: datetime, ended_at: Optional[datetime]) -> Optional[int]:
    """Whole minutes between start and end; None while the session is open."""
    if started_at is None or ended_at is None:
        return None
    return round_half_up((ended_at - started_at).total_seconds() / 60)
