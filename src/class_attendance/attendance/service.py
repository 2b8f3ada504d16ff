from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence, Union

from ..common.datetime_utils import Clock, SystemClock, combine_like
from ..common.logging import get_logger
from ..common.transaction import LocalTransactionManager, TransactionManager, lock_key
from ..common.validators import clean_note, require_enum
from ..core.constants import DEFAULT_LATE_THRESHOLD_MINUTES
from ..core.enums import AttendanceStatus, MarkingMethod, SessionStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..schedules.repository import TimeSlotRepository
from ..sessions.model import Session
from ..sessions.service import SessionLifecycleManager
from .factory import CheckInStrategyFactory
from .model import AttendanceMark, AttendanceRecord, AttendanceUpdate
from .repository import AttendanceRepository

logger = get_logger(__name__)


class AttendanceMarkingEngine:
    """All mutation of attendance rows after a session is created.

    Every write happens under the session's lock after re-reading the session,
    so a concurrent end/cancel cannot slip in between the check and the write.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        lifecycle: SessionLifecycleManager,
        slots: TimeSlotRepository,
        *,
        clock: Optional[Clock] = None,
        transactions: Optional[TransactionManager] = None,
        strategy_factory: Optional[CheckInStrategyFactory] = None,
        late_threshold_minutes: int = DEFAULT_LATE_THRESHOLD_MINUTES,
    ):
        self._attendance = attendance
        self._lifecycle = lifecycle
        self._slots = slots
        self._clock = clock or SystemClock()
        self._tx = transactions or LocalTransactionManager()
        self._factory = strategy_factory or CheckInStrategyFactory()
        self._late_threshold = int(late_threshold_minutes)

    def _load_modifiable(self, session_id: int, teacher_id: int) -> Session:
        session = self._lifecycle.get_for_mutation(session_id)
        self._lifecycle.ensure_owner(session, teacher_id)
        self._lifecycle.ensure_modifiable(session)
        return session

    @staticmethod
    def _manual_mark(
        *,
        attendance_id: int,
        status: AttendanceStatus,
        notes: Optional[str],
        teacher_id: int,
        now: datetime,
    ) -> AttendanceMark:
        # Re-marking uses the marking instant as check-in time, not the original arrival.
        return AttendanceMark(
            attendance_id=int(attendance_id),
            status=status,
            check_in_time=now if status != AttendanceStatus.ABSENT else None,
            marked_by=int(teacher_id),
            notes=clean_note(notes),
            marked_at=now,
        )

    @staticmethod
    def _applied(record: AttendanceRecord, mark: AttendanceMark) -> AttendanceRecord:
        return replace(
            record,
            status=mark.status,
            check_in_time=mark.check_in_time,
            method=MarkingMethod.MANUAL,
            marked_by=mark.marked_by,
            notes=mark.notes,
            updated_at=mark.marked_at,
        )

    def bulk_mark(
        self,
        *,
        session_id: int,
        updates: Sequence[AttendanceUpdate],
        teacher_id: int,
    ) -> list[AttendanceRecord]:
        """Mark many rows of one session; nothing is written unless every update is valid."""
        if not updates:
            raise ValidationError("At least one attendance record required")

        with self._tx.atomic(lock_key("session", session_id)):
            session = self._load_modifiable(session_id, teacher_id)
            rows = {r.attendance_id: r for r in self._attendance.list_for_session(session.session_id)}

            now = self._clock.now()
            marks: list[AttendanceMark] = []
            for u in updates:
                status = require_enum(AttendanceStatus, u.status, "Status")
                if int(u.attendance_id) not in rows:
                    raise NotFoundError(f"Attendance record {u.attendance_id} not found in this session")
                marks.append(
                    self._manual_mark(
                        attendance_id=u.attendance_id,
                        status=status,
                        notes=u.notes,
                        teacher_id=teacher_id,
                        now=now,
                    )
                )

            self._attendance.apply_marks(marks)

        for m in marks:
            rows[m.attendance_id] = self._applied(rows[m.attendance_id], m)

        logger.info("attendance_bulk_marked", session_id=session.session_id, updated=len(marks), teacher_id=teacher_id)
        return [rows[m.attendance_id] for m in marks]

    def mark_single(
        self,
        *,
        attendance_id: int,
        status: Union[AttendanceStatus, str],
        notes: Optional[str],
        teacher_id: int,
    ) -> AttendanceRecord:
        record = self._attendance.get_by_id(int(attendance_id))
        if not record:
            raise NotFoundError("Attendance record not found")

        with self._tx.atomic(lock_key("session", record.session_id)):
            self._load_modifiable(record.session_id, teacher_id)
            value = require_enum(AttendanceStatus, status, "Status")

            record = self._attendance.get_by_id(int(attendance_id))
            if not record:
                raise NotFoundError("Attendance record not found")

            mark = self._manual_mark(
                attendance_id=record.attendance_id,
                status=value,
                notes=notes,
                teacher_id=teacher_id,
                now=self._clock.now(),
            )
            self._attendance.apply_marks([mark])

        logger.info("attendance_marked", attendance_id=record.attendance_id, status=value.value, teacher_id=teacher_id)
        return self._applied(record, mark)

    def student_check_in(
        self,
        *,
        session_id: int,
        student_id: int,
        method: Union[MarkingMethod, str, None] = None,
        confidence: Optional[float] = None,
    ) -> AttendanceRecord:
        """One-shot self check-in; present within the late threshold, late after it."""
        how = require_enum(MarkingMethod, method, "Method") if method else MarkingMethod.SELF_SERVICE
        if confidence is not None:
            try:
                confidence = float(confidence)
            except (TypeError, ValueError) as e:
                raise ValidationError("Confidence must be between 0 and 1") from e
            if not 0.0 <= confidence <= 1.0:
                raise ValidationError("Confidence must be between 0 and 1")

        with self._tx.atomic(lock_key("session", session_id)):
            session = self._lifecycle.get_for_mutation(session_id)
            if session.status != SessionStatus.ONGOING:
                raise ConflictError("Session is not active for check-in")

            record = self._attendance.get_for_session_and_student(
                session_id=session.session_id, student_id=int(student_id)
            )
            if not record:
                raise NotFoundError("Attendance record not found for this session")
            if record.status != AttendanceStatus.ABSENT:
                raise ConflictError("Already checked in for this session")

            slot = self._slots.get_by_id(session.slot_id)
            if not slot:
                raise NotFoundError("Schedule not found")

            now = self._clock.now()
            scheduled_start = combine_like(session.session_date, slot.start_time, now)
            strategy = self._factory.for_checkin(
                now=now, scheduled_start=scheduled_start, threshold_minutes=self._late_threshold
            )
            decision = strategy.decide_checkin(
                now=now, scheduled_start=scheduled_start, threshold_minutes=self._late_threshold
            )

            self._attendance.record_check_in(
                attendance_id=record.attendance_id,
                status=decision.status,
                check_in_time=now,
                method=how,
                confidence=confidence,
            )

        logger.info(
            "student_checked_in",
            session_id=session.session_id,
            student_id=int(student_id),
            status=decision.status.value,
            minutes_late=decision.minutes_late,
        )
        return replace(
            record,
            status=decision.status,
            check_in_time=now,
            method=how,
            confidence=confidence,
            updated_at=now,
        )
