from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime, time
from typing import Optional, Sequence

from class_attendance.attendance.model import AttendanceHistoryRow, AttendanceMark, AttendanceRecord
from class_attendance.core.enums import AttendanceStatus, MarkingMethod, SessionStatus
from class_attendance.core.exceptions import ConflictError
from class_attendance.schedules.model import AcademicPeriod, TimeSlot, TimeSlotDraft
from class_attendance.sessions.model import Session


class InMemorySlots:
    def __init__(self, slots: Sequence[TimeSlot] = ()):
        self.slots: dict[int, TimeSlot] = {s.slot_id: s for s in slots}
        self._id = max(self.slots, default=0)

    def get_by_id(self, slot_id: int) -> Optional[TimeSlot]:
        return self.slots.get(slot_id)

    def list_active_for_day(self, *, day_of_week: int, academic_period_id: int):
        return [
            s
            for s in self.slots.values()
            if s.is_active and s.day_of_week == day_of_week and s.academic_period_id == academic_period_id
        ]

    def list_for_teacher(self, *, teacher_id: int, academic_period_id=None, is_active=None):
        return [
            s
            for s in self.slots.values()
            if s.teacher_id == teacher_id
            and (academic_period_id is None or s.academic_period_id == academic_period_id)
            and (is_active is None or s.is_active == is_active)
        ]

    def list_for_class(self, *, class_id: int, academic_period_id=None, is_active=None):
        return [
            s
            for s in self.slots.values()
            if s.class_id == class_id
            and (academic_period_id is None or s.academic_period_id == academic_period_id)
            and (is_active is None or s.is_active == is_active)
        ]

    def create(self, draft: TimeSlotDraft) -> int:
        self._id += 1
        self.slots[self._id] = TimeSlot(slot_id=self._id, is_active=True, **asdict(draft))
        return self._id

    def update(self, slot: TimeSlot) -> bool:
        if slot.slot_id not in self.slots:
            return False
        self.slots[slot.slot_id] = slot
        return True

    def set_active(self, *, slot_id: int, is_active: bool) -> bool:
        if slot_id not in self.slots:
            return False
        self.slots[slot_id] = replace(self.slots[slot_id], is_active=is_active)
        return True

    def delete(self, *, slot_id: int) -> bool:
        return self.slots.pop(slot_id, None) is not None


@dataclass
class InMemoryPeriods:
    periods: dict[int, AcademicPeriod]

    def get_by_id(self, period_id: int) -> Optional[AcademicPeriod]:
        return self.periods.get(period_id)


class InMemorySessions:
    def __init__(self, slots: Optional[InMemorySlots] = None):
        self.sessions: dict[int, Session] = {}
        self._id = 0
        self._slots = slots

    def get_by_id(self, session_id: int) -> Optional[Session]:
        return self.sessions.get(session_id)

    def get_for_slot_and_date(self, *, slot_id: int, session_date: date) -> Optional[Session]:
        for s in self.sessions.values():
            if s.slot_id == slot_id and s.session_date == session_date:
                return s
        return None

    def create(self, *, slot_id: int, session_date: date, started_at: datetime, created_by: int, notes=None) -> int:
        if self.get_for_slot_and_date(slot_id=slot_id, session_date=session_date):
            raise ConflictError("Session already exists for this date")
        self._id += 1
        self.sessions[self._id] = Session(
            session_id=self._id,
            slot_id=slot_id,
            session_date=session_date,
            status=SessionStatus.ONGOING,
            started_at=started_at,
            created_by=created_by,
            notes=notes,
        )
        return self._id

    def update_status(self, *, session_id: int, status: SessionStatus, ended_at) -> bool:
        if session_id not in self.sessions:
            return False
        self.sessions[session_id] = replace(self.sessions[session_id], status=status, ended_at=ended_at)
        return True

    def list_for_slot(self, slot_id: int):
        items = [s for s in self.sessions.values() if s.slot_id == slot_id]
        items.sort(key=lambda s: s.session_date, reverse=True)
        return items

    def list_for_slots(self, *, slot_ids, start_date: date, end_date: date):
        wanted = set(slot_ids)
        return [
            s
            for s in self.sessions.values()
            if s.slot_id in wanted and start_date <= s.session_date <= end_date
        ]

    def list_matching(self, *, start_date=None, end_date=None, class_id=None, teacher_id=None):
        def class_of(s: Session):
            slot = self._slots.get_by_id(s.slot_id) if self._slots else None
            return slot.class_id if slot else None

        items = [
            s
            for s in self.sessions.values()
            if (start_date is None or s.session_date >= start_date)
            and (end_date is None or s.session_date <= end_date)
            and (class_id is None or class_of(s) == class_id)
            and (teacher_id is None or s.created_by == teacher_id)
        ]
        items.sort(key=lambda s: (s.session_date, s.session_id), reverse=True)
        return items

    def list_ongoing_for_teacher(self, teacher_id: int):
        return [
            s
            for s in self.sessions.values()
            if s.status == SessionStatus.ONGOING and s.created_by == teacher_id
        ]

    def count_for_slot(self, slot_id: int) -> int:
        return len(self.list_for_slot(slot_id))


class InMemoryAttendance:
    def __init__(self, sessions: InMemorySessions, slots: InMemorySlots):
        self.rows: dict[int, AttendanceRecord] = {}
        self._id = 0
        self._sessions = sessions
        self._slots = slots
        self.apply_calls = 0

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return self.rows.get(attendance_id)

    def get_for_session_and_student(self, *, session_id: int, student_id: int) -> Optional[AttendanceRecord]:
        for r in self.rows.values():
            if r.session_id == session_id and r.student_id == student_id:
                return r
        return None

    def list_for_session(self, session_id: int):
        return sorted((r for r in self.rows.values() if r.session_id == session_id), key=lambda r: r.student_id)

    def create_absent_rows(self, *, session_id: int, student_ids) -> int:
        for sid in student_ids:
            self._id += 1
            self.rows[self._id] = AttendanceRecord(
                attendance_id=self._id,
                session_id=session_id,
                student_id=sid,
                status=AttendanceStatus.ABSENT,
            )
        return len(student_ids)

    def apply_marks(self, marks: Sequence[AttendanceMark]) -> int:
        self.apply_calls += 1
        for m in marks:
            self.rows[m.attendance_id] = replace(
                self.rows[m.attendance_id],
                status=m.status,
                check_in_time=m.check_in_time,
                method=MarkingMethod.MANUAL,
                marked_by=m.marked_by,
                notes=m.notes,
                updated_at=m.marked_at,
            )
        return len(marks)

    def record_check_in(self, *, attendance_id: int, status, check_in_time, method, confidence=None) -> bool:
        self.rows[attendance_id] = replace(
            self.rows[attendance_id],
            status=status,
            check_in_time=check_in_time,
            method=method,
            confidence=confidence,
            updated_at=check_in_time,
        )
        return True

    def _history(self, r: AttendanceRecord) -> AttendanceHistoryRow:
        session = self._sessions.get_by_id(r.session_id)
        slot = self._slots.get_by_id(session.slot_id)
        return AttendanceHistoryRow(
            attendance_id=r.attendance_id,
            session_id=r.session_id,
            student_id=r.student_id,
            session_date=session.session_date,
            session_status=session.status,
            slot_id=slot.slot_id,
            class_id=slot.class_id,
            subject_id=slot.subject_id,
            teacher_id=slot.teacher_id,
            day_of_week=slot.day_of_week,
            status=r.status,
            check_in_time=r.check_in_time,
            notes=r.notes,
        )

    def list_history_for_student(self, *, student_id: int, start_date=None, end_date=None, subject_id=None, status=None):
        rows = [self._history(r) for r in self.rows.values() if r.student_id == student_id]
        rows = [
            h
            for h in rows
            if (start_date is None or h.session_date >= start_date)
            and (end_date is None or h.session_date <= end_date)
            and (subject_id is None or h.subject_id == subject_id)
            and (status is None or h.status == status)
        ]
        rows.sort(key=lambda h: h.session_date, reverse=True)
        return rows

    def list_history_for_class(self, *, class_id: int, start_date: date, end_date: date):
        rows = [self._history(r) for r in self.rows.values()]
        rows = [h for h in rows if h.class_id == class_id and start_date <= h.session_date <= end_date]
        rows.sort(key=lambda h: (h.session_date, h.student_id))
        return rows

    def list_history(self, *, class_id=None, teacher_id=None, student_id=None, start_date=None, end_date=None):
        rows = []
        for r in self.rows.values():
            h = self._history(r)
            creator = self._sessions.get_by_id(r.session_id).created_by
            if (
                (class_id is None or h.class_id == class_id)
                and (teacher_id is None or creator == teacher_id)
                and (student_id is None or h.student_id == student_id)
                and (start_date is None or h.session_date >= start_date)
                and (end_date is None or h.session_date <= end_date)
            ):
                rows.append(h)
        rows.sort(key=lambda h: (h.session_date, h.student_id))
        return rows

    def list_open_for_student(self, student_id: int):
        return [
            h
            for h in (self._history(r) for r in self.rows.values() if r.student_id == student_id)
            if h.status == AttendanceStatus.ABSENT and h.session_status == SessionStatus.ONGOING
        ]


@dataclass
class InMemoryRoster:
    students_by_class: dict[int, list[int]] = field(default_factory=dict)

    def get_enrolled_students(self, class_id: int):
        return list(self.students_by_class.get(class_id, []))

    def class_of(self, student_id: int) -> Optional[int]:
        for class_id, students in self.students_by_class.items():
            if student_id in students:
                return class_id
        return None

    def student_exists(self, student_id: int) -> bool:
        return self.class_of(student_id) is not None


MONDAY = date(2025, 3, 3)
TEACHER_ID = 7
OTHER_TEACHER_ID = 8
CLASS_ID = 10
PERIOD_ID = 1


def make_slot(slot_id: int, **overrides) -> TimeSlot:
    values = dict(
        slot_id=slot_id,
        teacher_id=TEACHER_ID,
        class_id=CLASS_ID,
        subject_id=3,
        academic_period_id=PERIOD_ID,
        day_of_week=1,
        start_time=time(8, 0),
        end_time=time(9, 30),
        room="A101",
        is_active=True,
    )
    values.update(overrides)
    return TimeSlot(**values)
