from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus, MarkingMethod
from .model import AttendanceHistoryRow, AttendanceMark, AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_session_and_student(self, *, session_id: int, student_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def create_absent_rows(self, *, session_id: int, student_ids: Sequence[int]) -> int:
        """Roster snapshot: one ``absent`` row per student. Returns rows created."""

        raise NotImplementedError

    def apply_marks(self, marks: Sequence[AttendanceMark]) -> int:
        """Write manual marks (method=manual). Returns rows updated."""

        raise NotImplementedError

    def record_check_in(
        self,
        *,
        attendance_id: int,
        status: AttendanceStatus,
        check_in_time: datetime,
        method: MarkingMethod,
        confidence: Optional[float] = None,
    ) -> bool:
        raise NotImplementedError

    def list_history_for_student(
        self,
        *,
        student_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        subject_id: Optional[int] = None,
        status: Optional[AttendanceStatus] = None,
    ) -> Sequence[AttendanceHistoryRow]:
        """Newest session first."""

        raise NotImplementedError

    def list_history_for_class(
        self,
        *,
        class_id: int,
        start_date: date,
        end_date: date,
    ) -> Sequence[AttendanceHistoryRow]:
        """Oldest session first."""

        raise NotImplementedError

    def list_history(
        self,
        *,
        class_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
        student_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[AttendanceHistoryRow]:
        """Rows of one class, of sessions created by one teacher, or of one student; oldest first."""

        raise NotImplementedError

    def list_open_for_student(self, student_id: int) -> Sequence[AttendanceHistoryRow]:
        """Rows still ``absent`` in ``ongoing`` sessions."""

        raise NotImplementedError
