from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from .base import CheckInStrategy, StatusDecision


class OnTimeStrategy(CheckInStrategy):
    """Check-in up to the late threshold counts as present."""

    def decide_checkin(self, *, now: datetime, scheduled_start: datetime, threshold_minutes: int) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)
