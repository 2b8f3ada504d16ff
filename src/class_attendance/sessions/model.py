from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..attendance.model import AttendanceRecord
from ..core.enums import SessionStatus
from ..schedules.model import TimeSlot


@dataclass(frozen=True)
class Session:
    """Domain entity: one dated occurrence of a time slot."""

    session_id: int
    slot_id: int
    session_date: date
    status: SessionStatus
    started_at: datetime
    created_by: int
    ended_at: Optional[datetime] = None
    notes: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass(frozen=True)
class SessionWithAttendance:
    session: Session
    slot: TimeSlot
    attendances: list[AttendanceRecord] = field(default_factory=list)

    @property
    def total_students(self) -> int:
        return len(self.attendances)


@dataclass(frozen=True)
class SessionOverview:
    """List row: a session with its status counts."""

    session: Session
    summary: dict


@dataclass(frozen=True)
class OpenCheckIn:
    """Ongoing session in which a student is still marked absent."""

    attendance_id: int
    session: Session
    slot: TimeSlot


@dataclass(frozen=True)
class SessionStatistics:
    total_sessions: int
    by_status: dict[str, int]
    by_class: dict[int, int]
    total_classes: int
    filters: dict
