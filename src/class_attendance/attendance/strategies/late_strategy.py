from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from .base import CheckInStrategy, StatusDecision


class LateStrategy(CheckInStrategy):
    """Late check-in."""

    def decide_checkin(self, *, now: datetime, scheduled_start: datetime, threshold_minutes: int) -> StatusDecision:
        minutes = int((now - scheduled_start).total_seconds() // 60)
        return StatusDecision(status=AttendanceStatus.LATE, minutes_late=max(minutes, 0))
