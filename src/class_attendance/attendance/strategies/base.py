from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from ...core.enums import AttendanceStatus


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    minutes_late: int = 0


class CheckInStrategy(ABC):
    """Strategy Pattern: encapsulate how we decide a self-service check-in status."""

    @abstractmethod
    def decide_checkin(self, *, now: datetime, scheduled_start: datetime, threshold_minutes: int) -> StatusDecision:
        raise NotImplementedError
