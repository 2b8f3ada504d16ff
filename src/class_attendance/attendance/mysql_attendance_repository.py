from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus, MarkingMethod, SessionStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceHistoryRow, AttendanceMark, AttendanceRecord
from .repository import AttendanceRepository

_RECORD_COLUMNS = """
    attendance_id, session_id, student_id, status, check_in_time,
    method, confidence, marked_by, notes, updated_at
"""

_HISTORY_SELECT = """
    SELECT
        a.attendance_id, a.session_id, a.student_id, a.status, a.check_in_time, a.notes,
        s.session_date, s.status AS session_status,
        c.slot_id, c.class_id, c.subject_id, c.teacher_id, c.day_of_week
    FROM attendances a
    JOIN attendance_sessions s ON s.session_id = a.session_id
    JOIN class_schedules c ON c.slot_id = s.slot_id
"""


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        session_id=int(r["session_id"]),
        student_id=int(r["student_id"]),
        status=AttendanceStatus(r["status"]),
        check_in_time=r.get("check_in_time"),
        method=MarkingMethod(r["method"]) if r.get("method") else None,
        confidence=float(r["confidence"]) if r.get("confidence") is not None else None,
        marked_by=int(r["marked_by"]) if r.get("marked_by") is not None else None,
        notes=r.get("notes"),
        updated_at=r.get("updated_at"),
    )


def _to_history(r: dict) -> AttendanceHistoryRow:
    return AttendanceHistoryRow(
        attendance_id=int(r["attendance_id"]),
        session_id=int(r["session_id"]),
        student_id=int(r["student_id"]),
        session_date=r["session_date"],
        session_status=SessionStatus(r["session_status"]),
        slot_id=int(r["slot_id"]),
        class_id=int(r["class_id"]),
        subject_id=int(r["subject_id"]),
        teacher_id=int(r["teacher_id"]),
        day_of_week=int(r["day_of_week"]),
        status=AttendanceStatus(r["status"]),
        check_in_time=r.get("check_in_time"),
        notes=r.get("notes"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_RECORD_COLUMNS} FROM attendances WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_session_and_student(self, *, session_id: int, student_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM attendances WHERE session_id=%s AND student_id=%s",
                (int(session_id), int(student_id)),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM attendances WHERE session_id=%s ORDER BY student_id ASC",
                (int(session_id),),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def create_absent_rows(self, *, session_id: int, student_ids: Sequence[int]) -> int:
        if not student_ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                "INSERT INTO attendances(session_id, student_id, status) VALUES(%s,%s,%s)",
                [(int(session_id), int(sid), AttendanceStatus.ABSENT.value) for sid in student_ids],
            )
            return len(student_ids)

    def apply_marks(self, marks: Sequence[AttendanceMark]) -> int:
        if not marks:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                UPDATE attendances
                SET status=%s, check_in_time=%s, method=%s, marked_by=%s, notes=%s, updated_at=%s
                WHERE attendance_id=%s
                """,
                [
                    (
                        m.status.value,
                        m.check_in_time,
                        MarkingMethod.MANUAL.value,
                        int(m.marked_by),
                        m.notes,
                        m.marked_at,
                        int(m.attendance_id),
                    )
                    for m in marks
                ],
            )
            return len(marks)

    def record_check_in(
        self,
        *,
        attendance_id: int,
        status: AttendanceStatus,
        check_in_time: datetime,
        method: MarkingMethod,
        confidence: Optional[float] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendances
                SET status=%s, check_in_time=%s, method=%s, confidence=%s, updated_at=%s
                WHERE attendance_id=%s
                """,
                (status.value, check_in_time, method.value, confidence, check_in_time, int(attendance_id)),
            )
            return cur.rowcount > 0

    def list_history_for_student(
        self,
        *,
        student_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        subject_id: Optional[int] = None,
        status: Optional[AttendanceStatus] = None,
    ) -> Sequence[AttendanceHistoryRow]:
        clauses = ["a.student_id=%s"]
        params: list[object] = [int(student_id)]
        if start_date is not None:
            clauses.append("s.session_date >= %s")
            params.append(start_date)
        if end_date is not None:
            clauses.append("s.session_date <= %s")
            params.append(end_date)
        if subject_id is not None:
            clauses.append("c.subject_id=%s")
            params.append(int(subject_id))
        if status is not None:
            clauses.append("a.status=%s")
            params.append(status.value)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_HISTORY_SELECT}
                WHERE {where}
                ORDER BY s.session_date DESC, c.start_time DESC
                """,
                tuple(params),
            )
            return [_to_history(r) for r in fetchall(cur)]

    def list_history_for_class(
        self,
        *,
        class_id: int,
        start_date: date,
        end_date: date,
    ) -> Sequence[AttendanceHistoryRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_HISTORY_SELECT}
                WHERE c.class_id=%s AND s.session_date BETWEEN %s AND %s
                ORDER BY s.session_date ASC, c.start_time ASC, a.student_id ASC
                """,
                (int(class_id), start_date, end_date),
            )
            return [_to_history(r) for r in fetchall(cur)]

    def list_history(
        self,
        *,
        class_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
        student_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[AttendanceHistoryRow]:
        clauses = ["1=1"]
        params: list[object] = []
        if class_id is not None:
            clauses.append("c.class_id=%s")
            params.append(int(class_id))
        if teacher_id is not None:
            clauses.append("s.created_by=%s")
            params.append(int(teacher_id))
        if student_id is not None:
            clauses.append("a.student_id=%s")
            params.append(int(student_id))
        if start_date is not None:
            clauses.append("s.session_date >= %s")
            params.append(start_date)
        if end_date is not None:
            clauses.append("s.session_date <= %s")
            params.append(end_date)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_HISTORY_SELECT}
                WHERE {where}
                ORDER BY s.session_date ASC, c.start_time ASC, a.student_id ASC
                """,
                tuple(params),
            )
            return [_to_history(r) for r in fetchall(cur)]

    def list_open_for_student(self, student_id: int) -> Sequence[AttendanceHistoryRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_HISTORY_SELECT}
                WHERE a.student_id=%s AND a.status=%s AND s.status=%s
                ORDER BY s.started_at DESC
                """,
                (int(student_id), AttendanceStatus.ABSENT.value, SessionStatus.ONGOING.value),
            )
            return [_to_history(r) for r in fetchall(cur)]
