from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from datetime import date, timedelta
from typing import Any, Mapping, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import day_of_week, format_time, start_of_week
from ..common.logging import get_logger
from ..common.transaction import LocalTransactionManager, TransactionManager, lock_key
from ..common.validators import require_in_range, require_positive_id
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..core.identity import Actor
from ..reports.aggregator import status_counts
from ..rosters.repository import RosterProvider
from ..sessions.model import Session
from ..sessions.repository import SessionRepository
from .conflicts import ConflictResult, TimeConflictDetector
from .model import AcademicPeriod, TimeSlot, TimeSlotDraft
from .repository import AcademicPeriodRepository, TimeSlotRepository

logger = get_logger(__name__)

_DRAFT_FIELDS = {f.name for f in fields(TimeSlotDraft)}
_UPDATABLE_FIELDS = _DRAFT_FIELDS | {"is_active"}
_CONFLICT_FIELDS = {"teacher_id", "class_id", "day_of_week", "start_time", "end_time", "academic_period_id", "is_active"}


@dataclass(frozen=True)
class ScheduledSlot:
    """A slot on a concrete date, with the session held that day (if any)."""

    slot: TimeSlot
    on_date: date
    session: Optional[Session] = None


@dataclass(frozen=True)
class WeeklySchedule:
    week_start: date
    week_end: date
    days: dict[int, list[ScheduledSlot]]


@dataclass(frozen=True)
class PeriodSession:
    """One held session in a period view.

    Teachers get the status counts of the whole class; students get only
    their own row.
    """

    session: Session
    summary: Optional[dict[str, int]] = None
    my_attendance: Optional[AttendanceRecord] = None


@dataclass(frozen=True)
class PeriodSlot:
    slot: TimeSlot
    sessions: list[PeriodSession]

    @property
    def total_sessions(self) -> int:
        return len(self.sessions)


@dataclass(frozen=True)
class PeriodSchedule:
    academic_period: AcademicPeriod
    slots: list[PeriodSlot]

    @property
    def total_slots(self) -> int:
        return len(self.slots)


class ScheduleService:
    """Admin use cases for time slots, plus read-only timetable views."""

    def __init__(
        self,
        slots: TimeSlotRepository,
        periods: AcademicPeriodRepository,
        sessions: SessionRepository,
        roster: Optional[RosterProvider] = None,
        *,
        attendance: Optional[AttendanceRepository] = None,
        detector: Optional[TimeConflictDetector] = None,
        transactions: Optional[TransactionManager] = None,
    ):
        self._slots = slots
        self._periods = periods
        self._sessions = sessions
        self._roster = roster
        self._attendance = attendance
        self._detector = detector or TimeConflictDetector()
        self._tx = transactions or LocalTransactionManager()

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Only administrators can manage schedules")

    def _validated(self, draft: TimeSlotDraft) -> TimeSlotDraft:
        teacher_id = require_positive_id(draft.teacher_id, "Teacher")
        class_id = require_positive_id(draft.class_id, "Class")
        subject_id = require_positive_id(draft.subject_id, "Subject")
        period_id = require_positive_id(draft.academic_period_id, "Academic period")
        dow = require_in_range(draft.day_of_week, "Day of week", 1, 7)
        if draft.start_time is None or draft.end_time is None:
            raise ValidationError("Start time and end time are required")
        if draft.end_time <= draft.start_time:
            raise ValidationError("End time must be after start time")

        if not self._periods.get_by_id(period_id):
            raise NotFoundError("Academic period not found")

        room = (draft.room or "").strip() or None
        return TimeSlotDraft(
            teacher_id=teacher_id,
            class_id=class_id,
            subject_id=subject_id,
            academic_period_id=period_id,
            day_of_week=dow,
            start_time=draft.start_time,
            end_time=draft.end_time,
            room=room,
        )

    def _detect(self, candidate, *, exclude_slot_id: Optional[int] = None, pending: Sequence[TimeSlot] = ()) -> ConflictResult:
        existing = list(
            self._slots.list_active_for_day(
                day_of_week=candidate.day_of_week,
                academic_period_id=candidate.academic_period_id,
            )
        )
        existing.extend(pending)
        return self._detector.check_conflict(candidate, existing, exclude_slot_id=exclude_slot_id)

    def check_conflict(self, draft: TimeSlotDraft, *, exclude_slot_id: Optional[int] = None) -> ConflictResult:
        """Read-only probe, callable before any mutation."""
        return self._detect(self._validated(draft), exclude_slot_id=exclude_slot_id)

    def create_slot(self, *, actor: Actor, draft: TimeSlotDraft) -> TimeSlot:
        self._require_admin(actor)
        draft = self._validated(draft)

        with self._tx.atomic(lock_key("teacher", draft.teacher_id), lock_key("class", draft.class_id)):
            result = self._detect(draft)
            if result.conflict:
                logger.info("slot_rejected", reason=result.reason, teacher_id=draft.teacher_id, class_id=draft.class_id)
                raise ConflictError(result.reason)
            slot_id = self._slots.create(draft)

        logger.info(
            "slot_created",
            slot_id=slot_id,
            teacher_id=draft.teacher_id,
            class_id=draft.class_id,
            day_of_week=draft.day_of_week,
            start=format_time(draft.start_time),
            end=format_time(draft.end_time),
        )
        return TimeSlot(slot_id=slot_id, is_active=True, **asdict(draft))

    def update_slot(self, *, actor: Actor, slot_id: int, changes: Mapping[str, Any]) -> TimeSlot:
        self._require_admin(actor)

        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown schedule fields: {', '.join(sorted(unknown))}")

        existing = self._slots.get_by_id(int(slot_id))
        if not existing:
            raise NotFoundError("Schedule not found")

        merged = replace(existing, **dict(changes))
        draft = self._validated(TimeSlotDraft(**{k: getattr(merged, k) for k in _DRAFT_FIELDS}))
        merged = TimeSlot(slot_id=existing.slot_id, is_active=bool(merged.is_active), **asdict(draft))

        keys = {
            lock_key("teacher", existing.teacher_id),
            lock_key("class", existing.class_id),
            lock_key("teacher", merged.teacher_id),
            lock_key("class", merged.class_id),
        }
        with self._tx.atomic(*keys):
            if merged.is_active and _CONFLICT_FIELDS & set(changes):
                result = self._detect(merged, exclude_slot_id=existing.slot_id)
                if result.conflict:
                    logger.info("slot_update_rejected", slot_id=existing.slot_id, reason=result.reason)
                    raise ConflictError(result.reason)
            if not self._slots.update(merged):
                raise NotFoundError("Schedule not found")

        logger.info("slot_updated", slot_id=existing.slot_id, fields=sorted(changes))
        return merged

    def bulk_create_slots(self, *, actor: Actor, drafts: Sequence[TimeSlotDraft]) -> list[TimeSlot]:
        """Create several slots; all-or-nothing.

        Each candidate is checked against persisted slots and against the
        candidates accepted before it in the same batch.
        """
        self._require_admin(actor)
        if not drafts:
            raise ValidationError("At least one schedule is required")

        validated = [self._validated(d) for d in drafts]
        keys = {lock_key("teacher", d.teacher_id) for d in validated}
        keys |= {lock_key("class", d.class_id) for d in validated}

        created: list[TimeSlot] = []
        with self._tx.atomic(*keys):
            accepted: list[TimeSlot] = []
            for d in validated:
                result = self._detect(d, pending=accepted)
                if result.conflict:
                    logger.info("bulk_slots_rejected", reason=result.reason, size=len(validated))
                    raise ConflictError(f"Conflict for {result.reason} - Schedule: {self._describe(d)}")
                # slot_id 0 marks a batch-local candidate that is not persisted yet.
                accepted.append(TimeSlot(slot_id=0, is_active=True, **asdict(d)))

            for d in validated:
                slot_id = self._slots.create(d)
                created.append(TimeSlot(slot_id=slot_id, is_active=True, **asdict(d)))

        logger.info("bulk_slots_created", count=len(created), slot_ids=[s.slot_id for s in created])
        return created

    def delete_slot(self, *, actor: Actor, slot_id: int, soft: bool = True) -> bool:
        """Deactivate (soft) or remove (hard) a slot.

        Returns True when the row was physically deleted. Slots that already
        have sessions can only be deactivated.
        """
        self._require_admin(actor)

        slot = self._slots.get_by_id(int(slot_id))
        if not slot:
            raise NotFoundError("Schedule not found")

        with self._tx.atomic(lock_key("slot", slot.slot_id)):
            has_sessions = self._sessions.count_for_slot(slot.slot_id) > 0
            if has_sessions and not soft:
                raise ConflictError("Cannot delete schedule with existing sessions. Use soft delete instead.")

            if soft:
                self._slots.set_active(slot_id=slot.slot_id, is_active=False)
                logger.info("slot_deactivated", slot_id=slot.slot_id)
                return False

            self._slots.delete(slot_id=slot.slot_id)

        logger.info("slot_deleted", slot_id=slot.slot_id)
        return True

    def get_slot(self, slot_id: int) -> TimeSlot:
        slot = self._slots.get_by_id(int(slot_id))
        if not slot:
            raise NotFoundError("Schedule not found")
        return slot

    def list_teacher_slots(
        self,
        *,
        teacher_id: int,
        academic_period_id: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> list[TimeSlot]:
        return list(
            self._slots.list_for_teacher(
                teacher_id=int(teacher_id),
                academic_period_id=academic_period_id,
                is_active=is_active,
            )
        )

    def _slots_for_actor(
        self,
        actor: Actor,
        *,
        academic_period_id: Optional[int] = None,
        is_active: Optional[bool] = True,
    ) -> list[TimeSlot]:
        if actor.is_teacher:
            return list(
                self._slots.list_for_teacher(
                    teacher_id=actor.actor_id,
                    academic_period_id=academic_period_id,
                    is_active=is_active,
                )
            )

        if actor.is_student:
            class_id = self._roster.class_of(actor.actor_id) if self._roster else None
            if class_id is None:
                raise NotFoundError("Student not found")
            return list(
                self._slots.list_for_class(
                    class_id=class_id,
                    academic_period_id=academic_period_id,
                    is_active=is_active,
                )
            )

        raise AuthorizationError("Invalid role")

    def slots_for_date(self, *, actor: Actor, on_date: date) -> list[ScheduledSlot]:
        dow = day_of_week(on_date)
        todays = sorted(
            (s for s in self._slots_for_actor(actor) if s.day_of_week == dow),
            key=lambda s: s.start_time,
        )
        sessions = self._sessions.list_for_slots(
            slot_ids=[s.slot_id for s in todays],
            start_date=on_date,
            end_date=on_date,
        )
        by_slot = {s.slot_id: s for s in sessions}
        return [ScheduledSlot(slot=s, on_date=on_date, session=by_slot.get(s.slot_id)) for s in todays]

    def weekly_schedule(self, *, actor: Actor, week_of: date) -> WeeklySchedule:
        week_start = start_of_week(week_of)
        week_end = week_start + timedelta(days=6)
        slots = self._slots_for_actor(actor)

        sessions = self._sessions.list_for_slots(
            slot_ids=[s.slot_id for s in slots],
            start_date=week_start,
            end_date=week_end,
        )
        by_slot_date = {(s.slot_id, s.session_date): s for s in sessions}

        days: dict[int, list[ScheduledSlot]] = {d: [] for d in range(1, 8)}
        for s in sorted(slots, key=lambda s: (s.day_of_week, s.start_time)):
            on_date = week_start + timedelta(days=s.day_of_week - 1)
            days[s.day_of_week].append(
                ScheduledSlot(slot=s, on_date=on_date, session=by_slot_date.get((s.slot_id, on_date)))
            )

        return WeeklySchedule(week_start=week_start, week_end=week_end, days=days)

    def _period_session(self, session: Session, actor: Actor) -> PeriodSession:
        if self._attendance is None:
            return PeriodSession(session=session)
        if actor.is_student:
            mine = self._attendance.get_for_session_and_student(
                session_id=session.session_id, student_id=actor.actor_id
            )
            return PeriodSession(session=session, my_attendance=mine)
        return PeriodSession(
            session=session,
            summary=status_counts(self._attendance.list_for_session(session.session_id)),
        )

    def period_schedule(self, *, actor: Actor, academic_period_id: int) -> PeriodSchedule:
        """Every slot of one academic period (inactive ones included) with its sessions, newest first."""
        period = self._periods.get_by_id(int(academic_period_id))
        if not period:
            raise NotFoundError("Academic period not found")

        slots = self._slots_for_actor(actor, academic_period_id=period.period_id, is_active=None)
        if not slots:
            raise NotFoundError("No schedules found for this academic period")

        entries = [
            PeriodSlot(
                slot=s,
                sessions=[self._period_session(x, actor) for x in self._sessions.list_for_slot(s.slot_id)],
            )
            for s in sorted(slots, key=lambda s: (s.day_of_week, s.start_time))
        ]
        return PeriodSchedule(academic_period=period, slots=entries)

    @staticmethod
    def _describe(draft: TimeSlotDraft) -> str:
        return (
            f"teacher={draft.teacher_id} class={draft.class_id} day={draft.day_of_week} "
            f"{format_time(draft.start_time)}-{format_time(draft.end_time)}"
        )
