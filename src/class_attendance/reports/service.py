from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Union

from ..attendance.model import AttendanceHistoryRow, AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import combine_like
from ..common.validators import require_enum
from ..core.constants import DEFAULT_WARNING_THRESHOLD
from ..core.enums import AttendanceStatus, RiskLevel, SummaryKind
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..core.identity import Actor
from ..rosters.repository import RosterProvider
from ..schedules.model import TimeSlot
from ..schedules.repository import TimeSlotRepository
from ..sessions.model import Session
from ..sessions.repository import SessionRepository
from . import aggregator


@dataclass(frozen=True)
class SessionAttendanceReport:
    session: Session
    slot: TimeSlot
    summary: dict[str, int]
    attendance_rate: int
    attendances: list[AttendanceRecord]
    arrivals: dict[int, str]
    duration_minutes: Optional[int] = None


@dataclass(frozen=True)
class StudentHistoryReport:
    student_id: int
    filters: dict[str, Any]
    summary: dict[str, int]
    rows: list[AttendanceHistoryRow]


@dataclass(frozen=True)
class StudentRiskReport:
    student_id: int
    total_sessions: int
    attendance_rate: int
    late_rate: int
    consecutive_absences: int
    risk_level: RiskLevel
    trend: aggregator.Trend
    most_common_status: Optional[AttendanceStatus]
    needs_warning: bool


@dataclass(frozen=True)
class AttendanceSummaryReport:
    kind: SummaryKind
    target_id: int
    filters: dict[str, Any]
    summary: dict[str, int]
    by_subject: dict[int, dict[str, int]]


@dataclass(frozen=True)
class ClassAnalytics:
    class_id: int
    start: date
    end: date
    overall: dict[str, int]
    by_subject: dict[int, dict[str, int]]
    by_weekday: dict[int, dict[str, int]]
    by_date: dict[str, dict[str, int]]


def _with_rate(rows) -> dict[str, int]:
    summary = aggregator.status_counts(rows)
    summary["attendance_rate"] = aggregator.attendance_rate(rows)
    return summary


class ReportService:
    """Read-only reporting over persisted attendance; numbers come from ``aggregator``."""

    def __init__(
        self,
        sessions: SessionRepository,
        slots: TimeSlotRepository,
        attendance: AttendanceRepository,
        roster: RosterProvider,
        *,
        warning_threshold: int = DEFAULT_WARNING_THRESHOLD,
    ):
        self._sessions = sessions
        self._slots = slots
        self._attendance = attendance
        self._roster = roster
        self._warning_threshold = warning_threshold

    def session_attendance(self, *, session_id: int, actor: Actor) -> SessionAttendanceReport:
        session = self._sessions.get_by_id(int(session_id))
        if not session:
            raise NotFoundError("Session not found")

        if actor.is_teacher:
            if session.created_by != actor.actor_id:
                raise AuthorizationError("Unauthorized to view this session's attendance")
        elif not actor.is_admin:
            raise AuthorizationError("Unauthorized to view this session's attendance")

        slot = self._slots.get_by_id(session.slot_id)
        if not slot:
            raise NotFoundError("Schedule not found")

        rows = list(self._attendance.list_for_session(session.session_id))
        arrivals = {
            r.attendance_id: aggregator.time_difference_label(
                r.check_in_time, combine_like(session.session_date, slot.start_time, r.check_in_time)
            )
            for r in rows
            if r.check_in_time is not None
        }
        return SessionAttendanceReport(
            session=session,
            slot=slot,
            summary=aggregator.status_counts(rows),
            attendance_rate=aggregator.attendance_rate(rows),
            attendances=rows,
            arrivals=arrivals,
            duration_minutes=aggregator.session_duration_minutes(session.started_at, session.ended_at),
        )

    def _require_student(self, student_id: int) -> int:
        sid = int(student_id)
        if not self._roster.student_exists(sid):
            raise NotFoundError("Student not found")
        return sid

    def student_history(
        self,
        *,
        student_id: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
        subject_id: Optional[int] = None,
        status: Union[AttendanceStatus, str, None] = None,
    ) -> StudentHistoryReport:
        sid = self._require_student(student_id)
        if start and end and end < start:
            raise ValidationError("End date must be on or after start date")
        wanted = require_enum(AttendanceStatus, status, "Status") if status else None

        rows = list(
            self._attendance.list_history_for_student(
                student_id=sid,
                start_date=start,
                end_date=end,
                subject_id=subject_id,
                status=wanted,
            )
        )
        return StudentHistoryReport(
            student_id=sid,
            filters={
                "start_date": start.isoformat() if start else None,
                "end_date": end.isoformat() if end else None,
                "subject_id": subject_id,
                "status": wanted.value if wanted else None,
            },
            summary=_with_rate(rows),
            rows=rows,
        )

    def student_risk(self, *, student_id: int) -> StudentRiskReport:
        sid = self._require_student(student_id)
        newest_first = list(self._attendance.list_history_for_student(student_id=sid))

        rate = aggregator.attendance_rate(newest_first)
        streak = aggregator.consecutive_absences(newest_first)
        return StudentRiskReport(
            student_id=sid,
            total_sessions=len(newest_first),
            attendance_rate=rate,
            late_rate=aggregator.late_rate(newest_first),
            consecutive_absences=streak,
            risk_level=aggregator.risk_level(rate, streak),
            trend=aggregator.trend(list(reversed(newest_first))),
            most_common_status=aggregator.most_common_status(newest_first),
            needs_warning=aggregator.needs_attendance_warning(rate, self._warning_threshold),
        )

    def class_analytics(self, *, class_id: int, start: date, end: date) -> ClassAnalytics:
        if end < start:
            raise ValidationError("End date must be on or after start date")

        rows = list(self._attendance.list_history_for_class(class_id=int(class_id), start_date=start, end_date=end))

        by_subject: dict[int, list[AttendanceHistoryRow]] = defaultdict(list)
        by_weekday: dict[int, list[AttendanceHistoryRow]] = defaultdict(list)
        by_date: dict[str, list[AttendanceHistoryRow]] = defaultdict(list)
        for r in rows:
            by_subject[r.subject_id].append(r)
            by_weekday[r.day_of_week].append(r)
            by_date[r.session_date.isoformat()].append(r)

        return ClassAnalytics(
            class_id=int(class_id),
            start=start,
            end=end,
            overall=_with_rate(rows),
            by_subject={k: _with_rate(v) for k, v in sorted(by_subject.items())},
            by_weekday={k: aggregator.status_counts(v) for k, v in sorted(by_weekday.items())},
            by_date={k: aggregator.status_counts(v) for k, v in sorted(by_date.items())},
        )

    def _require_target(self, kind: SummaryKind, target_id: int) -> None:
        if kind == SummaryKind.STUDENT:
            self._require_student(target_id)
        elif kind == SummaryKind.CLASS:
            if not self._roster.get_enrolled_students(target_id) and not self._slots.list_for_class(class_id=target_id):
                raise NotFoundError("Class not found")
        elif not self._slots.list_for_teacher(teacher_id=target_id):
            raise NotFoundError("Teacher not found")

    def attendance_summary(
        self,
        *,
        kind: Union[SummaryKind, str],
        target_id: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> AttendanceSummaryReport:
        """Counts and rate for a class, a teacher's sessions or a student, split by subject."""
        wanted = require_enum(SummaryKind, kind, "Type")
        tid = int(target_id)
        if start and end and end < start:
            raise ValidationError("End date must be on or after start date")
        self._require_target(wanted, tid)

        rows = list(
            self._attendance.list_history(
                class_id=tid if wanted == SummaryKind.CLASS else None,
                teacher_id=tid if wanted == SummaryKind.TEACHER else None,
                student_id=tid if wanted == SummaryKind.STUDENT else None,
                start_date=start,
                end_date=end,
            )
        )

        by_subject: dict[int, list[AttendanceHistoryRow]] = defaultdict(list)
        for r in rows:
            by_subject[r.subject_id].append(r)

        return AttendanceSummaryReport(
            kind=wanted,
            target_id=tid,
            filters={
                "start_date": start.isoformat() if start else None,
                "end_date": end.isoformat() if end else None,
            },
            summary=_with_rate(rows),
            by_subject={k: aggregator.status_counts(v) for k, v in sorted(by_subject.items())},
        )
