from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from ..core.enums import AttendanceStatus, MarkingMethod, SessionStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's attendance outcome for one session."""

    attendance_id: int
    session_id: int
    student_id: int
    status: AttendanceStatus
    check_in_time: Optional[datetime] = None
    method: Optional[MarkingMethod] = None
    confidence: Optional[float] = None
    marked_by: Optional[int] = None
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class AttendanceUpdate:
    """One entry of a teacher's bulk marking request."""

    attendance_id: int
    status: Union[AttendanceStatus, str]
    notes: Optional[str] = None


@dataclass(frozen=True)
class AttendanceMark:
    """A validated manual mark, ready to be written."""

    attendance_id: int
    status: AttendanceStatus
    check_in_time: Optional[datetime]
    marked_by: int
    notes: Optional[str]
    marked_at: datetime


@dataclass(frozen=True)
class AttendanceHistoryRow:
    """Read-model for history/analytics (attendance joined with session and slot)."""

    attendance_id: int
    session_id: int
    student_id: int
    session_date: date
    session_status: SessionStatus
    slot_id: int
    class_id: int
    subject_id: int
    teacher_id: int
    day_of_week: int
    status: AttendanceStatus
    check_in_time: Optional[datetime] = None
    notes: Optional[str] = None
