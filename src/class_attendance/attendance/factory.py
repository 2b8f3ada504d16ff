from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from ..core.constants import DEFAULT_LATE_THRESHOLD_MINUTES
from ..core.enums import AttendanceStatus
from .strategies.base import CheckInStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy


@dataclass
class CheckInStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_checkin(self, *, now: datetime, scheduled_start: datetime, threshold_minutes: int) -> CheckInStrategy:
        # Boundary is inclusive: exactly start + threshold is still on time.
        if now <= scheduled_start + timedelta(minutes=threshold_minutes):
            return OnTimeStrategy()
        return LateStrategy()


def determine_status(
    now: datetime,
    scheduled_start: datetime,
    late_threshold_minutes: int = DEFAULT_LATE_THRESHOLD_MINUTES,
) -> AttendanceStatus:
    strategy = CheckInStrategyFactory().for_checkin(
        now=now, scheduled_start=scheduled_start, threshold_minutes=late_threshold_minutes
    )
    return strategy.decide_checkin(
        now=now, scheduled_start=scheduled_start, threshold_minutes=late_threshold_minutes
    ).status
