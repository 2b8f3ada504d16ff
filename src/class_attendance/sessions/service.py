from __future__ import annotations

from collections import Counter
from dataclasses import replace
from datetime import date, timedelta
from typing import Optional, Union

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import Clock, SystemClock
from ..common.logging import get_logger
from ..common.transaction import LocalTransactionManager, TransactionManager, lock_key
from ..common.validators import clean_note, require_enum
from ..core.constants import MAX_SESSION_DAYS_AHEAD
from ..core.enums import SessionStatus
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ..core.identity import Actor
from ..reports.aggregator import status_counts
from ..rosters.repository import RosterProvider
from ..schedules.model import TimeSlot
from ..schedules.repository import TimeSlotRepository
from .model import OpenCheckIn, Session, SessionOverview, SessionStatistics, SessionWithAttendance
from .repository import SessionRepository

logger = get_logger(__name__)


class SessionLifecycleManager:
    """Creates sessions from time slots and drives their status.

    ``ongoing`` -> ``completed`` | ``cancelled``; both targets are terminal and
    freeze the session's attendance rows.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        slots: TimeSlotRepository,
        attendance: AttendanceRepository,
        roster: RosterProvider,
        *,
        clock: Optional[Clock] = None,
        transactions: Optional[TransactionManager] = None,
        max_days_ahead: int = MAX_SESSION_DAYS_AHEAD,
    ):
        self._sessions = sessions
        self._slots = slots
        self._attendance = attendance
        self._roster = roster
        self._clock = clock or SystemClock()
        self._tx = transactions or LocalTransactionManager()
        self._max_days_ahead = int(max_days_ahead)

    def _owned_slot(self, slot_id: int, teacher_id: int) -> TimeSlot:
        slot = self._slots.get_by_id(int(slot_id))
        if not slot or not slot.is_active or slot.teacher_id != int(teacher_id):
            raise NotFoundError("Schedule not found or unauthorized")
        return slot

    def create_session(
        self,
        *,
        slot_id: int,
        session_date: date,
        teacher_id: int,
        notes: Optional[str] = None,
    ) -> SessionWithAttendance:
        now = self._clock.now()
        if session_date > now.date() + timedelta(days=self._max_days_ahead):
            raise ValidationError("Session date cannot be more than 1 year in the future")

        with self._tx.atomic(lock_key("slot", slot_id)):
            slot = self._owned_slot(slot_id, teacher_id)

            if self._sessions.get_for_slot_and_date(slot_id=slot.slot_id, session_date=session_date):
                logger.info("session_duplicate", slot_id=slot.slot_id, session_date=session_date.isoformat())
                raise ConflictError("Session already exists for this date")

            # Snapshot of the roster at this instant; never recomputed later.
            student_ids = list(dict.fromkeys(int(s) for s in self._roster.get_enrolled_students(slot.class_id)))

            note = clean_note(notes)
            session_id = self._sessions.create(
                slot_id=slot.slot_id,
                session_date=session_date,
                started_at=now,
                created_by=int(teacher_id),
                notes=note,
            )
            self._attendance.create_absent_rows(session_id=session_id, student_ids=student_ids)
            records = list(self._attendance.list_for_session(session_id))

        session = Session(
            session_id=session_id,
            slot_id=slot.slot_id,
            session_date=session_date,
            status=SessionStatus.ONGOING,
            started_at=now,
            created_by=int(teacher_id),
            notes=note,
        )
        logger.info(
            "session_created",
            session_id=session_id,
            slot_id=slot.slot_id,
            session_date=session_date.isoformat(),
            roster_size=len(student_ids),
        )
        return SessionWithAttendance(session=session, slot=slot, attendances=records)

    def get_for_mutation(self, session_id: int) -> Session:
        """Re-read a session; callers hold the ``session:<id>`` lock."""
        session = self._sessions.get_by_id(int(session_id))
        if not session:
            raise NotFoundError("Session not found")
        return session

    @staticmethod
    def ensure_owner(session: Session, teacher_id: int) -> None:
        if session.created_by != int(teacher_id):
            raise AuthorizationError("Unauthorized to access this session")

    @staticmethod
    def ensure_modifiable(session: Session) -> None:
        if session.is_terminal:
            raise InvalidTransitionError(f"Cannot modify {session.status.value} session")

    def update_status(
        self,
        *,
        session_id: int,
        new_status: Union[SessionStatus, str],
        teacher_id: int,
    ) -> Session:
        with self._tx.atomic(lock_key("session", session_id)):
            session = self.get_for_mutation(session_id)
            self.ensure_owner(session, teacher_id)
            self.ensure_modifiable(session)

            target = require_enum(SessionStatus, new_status, "Status")
            if not session.status.can_transition_to(target):
                raise ValidationError(
                    f"Invalid status transition {session.status.value} -> {target.value}"
                )

            ended_at = self._clock.now()
            self._sessions.update_status(session_id=session.session_id, status=target, ended_at=ended_at)
            updated = replace(session, status=target, ended_at=ended_at)

        logger.info("session_status_changed", session_id=session.session_id, status=target.value)
        return updated

    def end_session(self, *, session_id: int, teacher_id: int) -> Session:
        return self.update_status(session_id=session_id, new_status=SessionStatus.COMPLETED, teacher_id=teacher_id)

    def cancel_session(self, *, session_id: int, teacher_id: int) -> Session:
        return self.update_status(session_id=session_id, new_status=SessionStatus.CANCELLED, teacher_id=teacher_id)

    def get_session(self, *, session_id: int, teacher_id: int) -> SessionWithAttendance:
        session = self.get_for_mutation(session_id)
        self.ensure_owner(session, teacher_id)
        slot = self._slots.get_by_id(session.slot_id)
        if not slot:
            raise NotFoundError("Schedule not found")
        return SessionWithAttendance(
            session=session,
            slot=slot,
            attendances=list(self._attendance.list_for_session(session.session_id)),
        )

    def list_sessions(self, *, slot_id: int, teacher_id: int) -> list[SessionOverview]:
        slot = self._slots.get_by_id(int(slot_id))
        if not slot or slot.teacher_id != int(teacher_id):
            raise NotFoundError("Schedule not found or unauthorized")

        return [
            SessionOverview(session=s, summary=status_counts(self._attendance.list_for_session(s.session_id)))
            for s in self._sessions.list_for_slot(slot.slot_id)
        ]

    def ongoing_for_teacher(self, teacher_id: int) -> list[SessionWithAttendance]:
        out: list[SessionWithAttendance] = []
        for s in self._sessions.list_ongoing_for_teacher(int(teacher_id)):
            slot = self._slots.get_by_id(s.slot_id)
            if not slot:
                continue
            out.append(
                SessionWithAttendance(
                    session=s,
                    slot=slot,
                    attendances=list(self._attendance.list_for_session(s.session_id)),
                )
            )
        return out

    def open_check_ins(self, student_id: int) -> list[OpenCheckIn]:
        out: list[OpenCheckIn] = []
        for row in self._attendance.list_open_for_student(int(student_id)):
            session = self._sessions.get_by_id(row.session_id)
            slot = self._slots.get_by_id(row.slot_id)
            if session and slot:
                out.append(OpenCheckIn(attendance_id=row.attendance_id, session=session, slot=slot))
        return out

    def active_sessions(self, *, actor: Actor) -> Union[list[SessionWithAttendance], list[OpenCheckIn]]:
        if actor.is_teacher:
            return self.ongoing_for_teacher(actor.actor_id)
        if actor.is_student:
            return self.open_check_ins(actor.actor_id)
        raise AuthorizationError("Invalid role")

    def statistics(
        self,
        *,
        actor: Actor,
        start: Optional[date] = None,
        end: Optional[date] = None,
        class_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
    ) -> SessionStatistics:
        """Admin overview: session totals by status and by class."""
        if not actor.is_admin:
            raise AuthorizationError("Only administrators can view session statistics")
        if start and end and end < start:
            raise ValidationError("End date must be on or after start date")

        matching = list(
            self._sessions.list_matching(start_date=start, end_date=end, class_id=class_id, teacher_id=teacher_id)
        )

        by_status = Counter(s.status for s in matching)
        class_of_slot: dict[int, int] = {}
        by_class: Counter = Counter()
        for s in matching:
            if s.slot_id not in class_of_slot:
                slot = self._slots.get_by_id(s.slot_id)
                if not slot:
                    continue
                class_of_slot[s.slot_id] = slot.class_id
            by_class[class_of_slot[s.slot_id]] += 1

        return SessionStatistics(
            total_sessions=len(matching),
            by_status={st.value: by_status.get(st, 0) for st in SessionStatus},
            by_class=dict(sorted(by_class.items())),
            total_classes=len(by_class),
            filters={
                "start_date": start.isoformat() if start else None,
                "end_date": end.isoformat() if end else None,
                "class_id": class_id,
                "teacher_id": teacher_id,
            },
        )
